"""Current-state repository for fabrics (SQLAlchemy Core).

One row per fabric code. Rows are never removed: deletion writes
``status = 'DELETED'`` and recreation reuses the row, continuing its version.

Concurrency:
    - Creation reads the row ``FOR UPDATE`` so concurrent creators of the same
      code serialize; the unique ``code`` constraint catches the insert race.
    - Updates and deletes are single conditional statements matching the
      previous version. On a zero row count the row is re-read: an ACTIVE row
      at another version is a concurrency conflict, anything else is not found.

Deadlines:
    Every method takes an optional ``timeout`` in seconds, normally the
    invocation's remaining time. On PostgreSQL it becomes the transaction's
    ``statement_timeout`` and ``lock_timeout``, and a statement cancelled by
    either is reported as :class:`DeadlineExceededError` with nothing written.
    SQLite has no per-statement timeout, so there the deadline is only checked
    between pipeline stages.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from textura.domain.fabrics.errors import (
    RESOURCE_TYPE,
    DuplicateFabricCodeError,
    FabricNotFoundError,
)
from textura.domain.fabrics.fabric import Fabric
from textura.domain.fabrics.value_objects import FabricStatus
from textura.foundation.application.context import DeadlineExceededError
from textura.foundation.domain.exceptions import (
    ConcurrencyConflictError,
    InfrastructureError,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy import Row
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

metadata = MetaData()

fabrics_table = Table(
    "fabrics",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("code", String(30), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("measure_unit", Text, nullable=False, default=""),
    Column("offer_status", Text, nullable=False, default=""),
    Column("status", String(20), nullable=False, default=FabricStatus.ACTIVE.value),
    Column("version", Integer, nullable=False),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

_COLUMNS = (
    fabrics_table.c.code,
    fabrics_table.c.name,
    fabrics_table.c.measure_unit,
    fabrics_table.c.offer_status,
    fabrics_table.c.status,
    fabrics_table.c.version,
    fabrics_table.c.created_at,
    fabrics_table.c.updated_at,
)


def _to_fabric(row: Row[Any]) -> Fabric:
    return Fabric.restore(
        code=row.code,
        name=row.name,
        measure_unit=row.measure_unit,
        offer_status=row.offer_status,
        status=row.status,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _mutable_values(fabric: Fabric) -> dict[str, Any]:
    return {
        "name": fabric.name,
        "measure_unit": fabric.measure_unit,
        "offer_status": fabric.offer_status,
        "status": fabric.status.value,
        "version": fabric.version,
        "updated_at": fabric.updated_at,
    }


# query_canceled (statement_timeout) and lock_not_available (lock_timeout)
_TIMEOUT_SQLSTATES = frozenset({"57014", "55P03"})

_SET_TIMEOUTS = text(
    "SELECT set_config('statement_timeout', :ms, true), set_config('lock_timeout', :ms, true)"
)


def _apply_timeout(session: Session, timeout: float | None) -> None:
    """Bound the current transaction's statements by ``timeout`` seconds."""
    if timeout is None or session.get_bind().dialect.name != "postgresql":
        return
    # 0 would disable the timeout
    millis = max(1, int(timeout * 1000))
    session.execute(_SET_TIMEOUTS, {"ms": f"{millis}ms"})


def _timed_out(exc: SQLAlchemyError) -> bool:
    return isinstance(exc, DBAPIError) and (
        getattr(exc.orig, "sqlstate", None) in _TIMEOUT_SQLSTATES
    )


def _storage_error(
    operation: str, code: str, exc: SQLAlchemyError
) -> InfrastructureError | DeadlineExceededError:
    if _timed_out(exc):
        logger.warning("fabric_repository: %s for %s hit the deadline", operation, code)
        return DeadlineExceededError(operation)
    logger.error("fabric_repository: %s failed for %s: %s", operation, code, exc)
    return InfrastructureError(
        f"Fabric storage failed during {operation}",
        context={"operation": operation, "code": code},
    )


def _lost_write(
    session: Session, code: str, previous_version: int
) -> ConcurrencyConflictError | FabricNotFoundError:
    current = session.execute(
        select(fabrics_table.c.status, fabrics_table.c.version).where(
            fabrics_table.c.code == code
        )
    ).one_or_none()
    if current is not None and current.status == FabricStatus.ACTIVE.value:
        return ConcurrencyConflictError(
            RESOURCE_TYPE, code, expected_version=previous_version, actual_version=current.version
        )
    return FabricNotFoundError(code, expected_version=previous_version)


class SqlFabricRepository:
    """SQLAlchemy implementation of :class:`FabricRepository`.

    All methods are synchronous and each runs in its own transaction.

    Args:
        session_factory: Callable returning a SQLAlchemy Session context manager.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def ensure_schema(self) -> None:
        """Create the ``fabrics`` table if it does not exist. Idempotent."""
        try:
            with self._session_factory() as session, session.begin():
                metadata.create_all(session.connection(), checkfirst=True)
        except SQLAlchemyError as exc:
            raise _storage_error("ensure_schema", "*", exc) from exc
        logger.info("fabric_repository: schema ready")

    def save(self, fabric: Fabric, *, timeout: float | None = None) -> Fabric:
        """Insert a new fabric, or reactivate the DELETED row holding its code.

        Args:
            fabric: Freshly created aggregate (version 1, one created event).
            timeout: Seconds the transaction may take, or ``None``.

        Returns:
            ``fabric`` on insert. On recreation, the stored fabric after
            ``reactivate()``: its version continues from the deleted row and it
            carries the ``FabricReactivated`` event instead.

        Raises:
            DuplicateFabricCodeError: If an ACTIVE fabric already uses the code.
            DeadlineExceededError: If ``timeout`` cancelled a statement.
            InfrastructureError: On storage failure.
        """
        try:
            with self._session_factory() as session, session.begin():
                _apply_timeout(session, timeout)
                row = session.execute(
                    select(*_COLUMNS)
                    .where(fabrics_table.c.code == fabric.code)
                    .with_for_update()
                ).one_or_none()

                if row is None:
                    session.execute(
                        insert(fabrics_table).values(
                            code=fabric.code,
                            created_at=fabric.created_at,
                            **_mutable_values(fabric),
                        )
                    )
                    return fabric

                existing = _to_fabric(row)
                if not existing.is_deleted:
                    raise DuplicateFabricCodeError(fabric.code)

                existing.reactivate(
                    fabric.name,
                    fabric.measure_unit,
                    fabric.offer_status,
                    expected_version=existing.version,
                )
                session.execute(
                    update(fabrics_table)
                    .where(fabrics_table.c.code == existing.code)
                    .values(**_mutable_values(existing))
                )
                logger.info(
                    "fabric_repository: reactivated %s at version %d",
                    existing.code,
                    existing.version,
                )
                return existing
        except IntegrityError as exc:
            # Lost the insert race to a concurrent creator.
            raise DuplicateFabricCodeError(fabric.code) from exc
        except SQLAlchemyError as exc:
            raise _storage_error("save", fabric.code, exc) from exc

    def get_active(self, code: str, *, timeout: float | None = None) -> Fabric:
        fabric = self._load(code, timeout)
        if fabric is None or fabric.is_deleted:
            raise FabricNotFoundError(code)
        return fabric

    def get_including_deleted(self, code: str, *, timeout: float | None = None) -> Fabric:
        fabric = self._load(code, timeout)
        if fabric is None:
            raise FabricNotFoundError(code)
        return fabric

    def update(self, fabric: Fabric, *, timeout: float | None = None) -> None:
        """Write an updated ACTIVE fabric if the row still holds the previous version.

        Raises:
            ConcurrencyConflictError: If the ACTIVE row holds another version.
            FabricNotFoundError: If the code is missing or DELETED.
            DeadlineExceededError: If ``timeout`` cancelled a statement.
            InfrastructureError: On storage failure.
        """
        self._conditional_write(
            "update",
            fabric,
            timeout,
            fabrics_table.c.status == FabricStatus.ACTIVE.value,
        )

    def delete(self, fabric: Fabric, *, timeout: float | None = None) -> None:
        """Write a DELETED fabric if the row still holds the previous version.

        Raises:
            ConcurrencyConflictError: If the ACTIVE row holds another version.
            FabricNotFoundError: If the code is missing or already DELETED.
            DeadlineExceededError: If ``timeout`` cancelled a statement.
            InfrastructureError: On storage failure.
        """
        self._conditional_write("delete", fabric, timeout)

    def _conditional_write(
        self, operation: str, fabric: Fabric, timeout: float | None, *criteria: Any
    ) -> None:
        previous_version = fabric.version - 1
        try:
            with self._session_factory() as session, session.begin():
                _apply_timeout(session, timeout)
                result = session.execute(
                    update(fabrics_table)
                    .where(
                        fabrics_table.c.code == fabric.code,
                        fabrics_table.c.version == previous_version,
                        *criteria,
                    )
                    .values(**_mutable_values(fabric))
                )
                if result.rowcount == 0:
                    raise _lost_write(session, fabric.code, previous_version)
        except SQLAlchemyError as exc:
            raise _storage_error(operation, fabric.code, exc) from exc

    def _load(self, code: str, timeout: float | None) -> Fabric | None:
        try:
            with self._session_factory() as session, session.begin():
                _apply_timeout(session, timeout)
                row = session.execute(
                    select(*_COLUMNS).where(fabrics_table.c.code == code)
                ).one_or_none()
        except SQLAlchemyError as exc:
            raise _storage_error("load", code, exc) from exc
        return None if row is None else _to_fabric(row)
