"""Storage port for the fabric current-state table."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from textura.domain.fabrics.fabric import Fabric


class FabricRepository(Protocol):
    """Current-state store, one row per fabric code.

    All methods are synchronous; the command service runs them in a worker
    thread. ``timeout`` is the time in seconds the call may take, usually the
    invocation's remaining deadline. An implementation that cancels a call on
    it raises ``DeadlineExceededError`` having written nothing.
    """

    def save(self, fabric: Fabric, *, timeout: float | None = None) -> Fabric:
        """Persist a newly created fabric.

        Returns the aggregate as persisted: ``fabric`` itself on insert, or
        the reactivated stored fabric (carrying its ``FabricReactivated``
        event) when the code belonged to a DELETED row.

        Raises:
            DuplicateFabricCodeError: If an ACTIVE fabric already uses the code.
        """
        ...

    def get_active(self, code: str, *, timeout: float | None = None) -> Fabric:
        """Raises FabricNotFoundError unless an ACTIVE row exists."""
        ...

    def get_including_deleted(self, code: str, *, timeout: float | None = None) -> Fabric:
        """Raises FabricNotFoundError if no row exists at all."""
        ...

    def update(self, fabric: Fabric, *, timeout: float | None = None) -> None:
        """Write fields and version, conditioned on the previous version.

        Raises:
            ConcurrencyConflictError: If the ACTIVE row holds another version.
            FabricNotFoundError: If the code is missing or DELETED.
        """
        ...

    def delete(self, fabric: Fabric, *, timeout: float | None = None) -> None:
        """Write DELETED status and version, conditioned on the previous version.

        Raises:
            ConcurrencyConflictError: If the ACTIVE row holds another version.
            FabricNotFoundError: If the code is missing or already DELETED.
        """
        ...
