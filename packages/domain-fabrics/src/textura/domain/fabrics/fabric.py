"""Fabric aggregate with ACTIVE/DELETED lifecycle.

The aggregate is a pure in-memory state machine. It validates commands,
advances ``version`` by exactly one per successful mutation and queues one
domain event per mutation. Persistence is the repository's job and
publishing is the service's.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TypeAlias

from textura.domain.fabrics.errors import RESOURCE_TYPE, FabricAlreadyDeletedError
from textura.domain.fabrics.value_objects import FabricCode, FabricName, FabricStatus
from textura.foundation.domain.aggregates import BaseAggregate
from textura.foundation.domain.events import BaseEvent
from textura.foundation.domain.exceptions import ConcurrencyConflictError

# -- Events ------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class FabricCreated(BaseEvent):
    code: str
    name: str
    measure_unit: str
    offer_status: str


@dataclass(frozen=True, kw_only=True)
class FabricUpdated(BaseEvent):
    code: str
    name: str
    measure_unit: str
    offer_status: str


@dataclass(frozen=True, kw_only=True)
class FabricDeleted(BaseEvent):
    code: str


@dataclass(frozen=True, kw_only=True)
class FabricReactivated(BaseEvent):
    code: str
    name: str
    measure_unit: str
    offer_status: str


FabricEvent: TypeAlias = FabricCreated | FabricUpdated | FabricDeleted | FabricReactivated


# -- Aggregate ---------------------------------------------------------------


class Fabric(BaseAggregate[FabricEvent]):
    """Versioned fabric identified by an immutable ``code``.

    State machine::

                     delete()
        ACTIVE -----------------> DELETED
          ^                          |
          +------ reactivate() ------+

    ``update()`` keeps the status ACTIVE. ``reactivate()`` on an ACTIVE
    fabric is an ordinary update.

    Attributes:
        code: Immutable identity (2-30 chars, ``A-Z0-9``).
        name: Display name (1-250 chars).
        measure_unit: Free-form unit of measure.
        offer_status: Free-form commercial offer status.
        status: Current lifecycle state.
        version: Starts at 1 on creation, +1 per mutation.
        created_at: Time of the creation event, or of the stored row.
        updated_at: Time of the latest event, or of the stored row.
    """

    def __init__(
        self,
        *,
        code: str,
        name: str,
        measure_unit: str,
        offer_status: str,
        status: FabricStatus = FabricStatus.ACTIVE,
        version: int = 0,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> None:
        super().__init__(version=version)
        self.code = code
        self.name = name
        self.measure_unit = measure_unit
        self.offer_status = offer_status
        self.status = status
        self.created_at = created_at
        self.updated_at = updated_at

    @classmethod
    def create(cls, code: str, name: str, measure_unit: str, offer_status: str) -> Fabric:
        """Create a new ACTIVE fabric at version 1.

        Raises:
            ValidationError: If the code or name breaks its format rule.
        """
        FabricCode(code)
        FabricName(name)

        fabric = cls(code=code, name=name, measure_unit=measure_unit, offer_status=offer_status)
        created = FabricCreated(
            originator_id=code,
            originator_version=fabric._next_version(),
            code=code,
            name=name,
            measure_unit=measure_unit,
            offer_status=offer_status,
        )
        fabric.created_at = created.timestamp
        fabric.updated_at = created.timestamp
        fabric._trigger(created)
        return fabric

    @classmethod
    def restore(
        cls,
        *,
        code: str,
        name: str,
        measure_unit: str,
        offer_status: str,
        status: str,
        version: int,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> Fabric:
        """Rebuild a fabric from its stored row. No events are queued."""
        return cls(
            code=code,
            name=name,
            measure_unit=measure_unit,
            offer_status=offer_status,
            status=FabricStatus(status),
            version=version,
            created_at=created_at,
            updated_at=updated_at,
        )

    @property
    def is_deleted(self) -> bool:
        return self.status is FabricStatus.DELETED

    # -- Commands --------------------------------------------------------

    def update(
        self, name: str, measure_unit: str, offer_status: str, expected_version: int
    ) -> None:
        """Replace the mutable fields. ACTIVE only.

        Raises:
            FabricAlreadyDeletedError: If the fabric is DELETED.
            ConcurrencyConflictError: If ``expected_version`` is not current.
            ValidationError: If the new name is invalid.
        """
        if self.is_deleted:
            raise FabricAlreadyDeletedError(self.code)
        self._check_version(expected_version)
        FabricName(name)

        self._apply_fields(name, measure_unit, offer_status)
        self._record(
            FabricUpdated(
                originator_id=self.code,
                originator_version=self._next_version(),
                code=self.code,
                name=name,
                measure_unit=measure_unit,
                offer_status=offer_status,
            )
        )

    def delete(self, expected_version: int) -> None:
        """Mark the fabric DELETED.

        Raises:
            FabricAlreadyDeletedError: If the fabric is already DELETED.
            ConcurrencyConflictError: If ``expected_version`` is not current.
        """
        if self.is_deleted:
            raise FabricAlreadyDeletedError(self.code)
        self._check_version(expected_version)

        self.status = FabricStatus.DELETED
        self._record(
            FabricDeleted(
                originator_id=self.code,
                originator_version=self._next_version(),
                code=self.code,
            )
        )

    def reactivate(
        self, name: str, measure_unit: str, offer_status: str, expected_version: int
    ) -> None:
        """Bring a DELETED fabric back with new field values.

        The version sequence continues from the deleted row. On an ACTIVE
        fabric this is :meth:`update`.

        Raises:
            ConcurrencyConflictError: If ``expected_version`` is not current.
            ValidationError: If the new name is invalid.
        """
        if not self.is_deleted:
            self.update(name, measure_unit, offer_status, expected_version)
            return
        self._check_version(expected_version)
        FabricName(name)

        self.status = FabricStatus.ACTIVE
        self._apply_fields(name, measure_unit, offer_status)
        self._record(
            FabricReactivated(
                originator_id=self.code,
                originator_version=self._next_version(),
                code=self.code,
                name=name,
                measure_unit=measure_unit,
                offer_status=offer_status,
            )
        )

    # -- Internals -------------------------------------------------------

    def _check_version(self, expected_version: int) -> None:
        if expected_version != self.version:
            raise ConcurrencyConflictError(
                RESOURCE_TYPE,
                self.code,
                expected_version=expected_version,
                actual_version=self.version,
            )

    def _apply_fields(self, name: str, measure_unit: str, offer_status: str) -> None:
        self.name = name
        self.measure_unit = measure_unit
        self.offer_status = offer_status

    def _record(self, event: FabricEvent) -> None:
        self.updated_at = event.timestamp
        self._trigger(event)
