"""Command service: the single entry point for fabric mutations.

Both ingress paths (REST and the inbound event feed) call the same methods.
Every mutation runs the same pipeline:

1. Aggregate operation (domain failures abort before any storage access).
2. Deadline check, then the current-state write.
3. Deadline check, then one envelope per queued event, appended to the
   event store in a single batch.
4. REST-originated commands only: publish each envelope to the outward
   subject. Publish failures are logged and do not fail the command.

Storage calls get the invocation's remaining time as their timeout. Steps 2 and
3 run as one task shielded from cancellation of the caller: a cancelled
command still records the events of a state write that was already started.

Once the state write has committed, a failure to record its events cannot be
undone here. It is logged as ``reconciliation_required`` and surfaced as
:class:`StateEventDivergenceError`.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Protocol, assert_never

from textura.domain.fabrics.errors import RESOURCE_TYPE
from textura.domain.fabrics.fabric import (
    Fabric,
    FabricCreated,
    FabricDeleted,
    FabricEvent,
    FabricReactivated,
    FabricUpdated,
)
from textura.foundation.domain.exceptions import DomainError, InfrastructureError
from textura.infra.messaging.envelope import EnvelopeMetadata, EventEnvelope
from textura.infra.messaging.errors import PublishError
from textura.infra.observability.logging import get_logger

if TYPE_CHECKING:
    from textura.domain.fabrics.ports import FabricRepository
    from textura.domain.fabrics.settings import FabricSettings
    from textura.foundation.application.context import InvocationContext
    from textura.infra.eventsourcing.event_store import EventStore
    from textura.infra.messaging.publisher import EnvelopePublisher

logger = get_logger(__name__)

AGGREGATE_TYPE = "fabric"


class _StateWrite(Protocol):
    def __call__(self, fabric: Fabric, /, *, timeout: float | None = None) -> Fabric | None: ...


class StateEventDivergenceError(InfrastructureError):
    """State was committed but its events were not recorded.

    Needs operator reconciliation; there is no automatic compensation.
    """

    error_code: str = "STATE_EVENT_DIVERGENCE"


def event_type_for(event: FabricEvent) -> str:
    """Map a domain event to its wire ``event_type``."""
    match event:
        case FabricCreated():
            return "app.fabric.created"
        case FabricUpdated():
            return "app.fabric.updated"
        case FabricDeleted():
            return "app.fabric.deleted"
        case FabricReactivated():
            return "app.fabric.reactivated"
        case _:
            assert_never(event)


def _metadata(ctx: InvocationContext) -> EnvelopeMetadata:
    return EnvelopeMetadata(
        correlation_id=ctx.correlation_id,
        causation_id=ctx.causation_id,
        user_id=ctx.user_id,
    )


class FabricCommandService:
    """Orchestrates fabric commands across state, event store and publisher.

    Storage calls are blocking and run through ``asyncio.to_thread``.

    Args:
        repository: Current-state store.
        event_store: Append-only event trail.
        publisher: Outward publisher for REST-originated envelopes.
        settings: Fabric configuration (outbound subject).
    """

    def __init__(
        self,
        repository: FabricRepository,
        event_store: EventStore,
        publisher: EnvelopePublisher,
        settings: FabricSettings,
    ) -> None:
        self._repository = repository
        self._event_store = event_store
        self._publisher = publisher
        self._settings = settings
        self._commits: set[asyncio.Task[Fabric]] = set()

    # -- Commands --------------------------------------------------------

    async def create_fabric(
        self,
        ctx: InvocationContext,
        code: str,
        name: str,
        measure_unit: str,
        offer_status: str,
    ) -> Fabric:
        """Create a fabric, or recreate a DELETED one with its version continued.

        Raises:
            ValidationError: If code or name is invalid.
            DuplicateFabricCodeError: If an ACTIVE fabric already uses the code.
            DeadlineExceededError: If the deadline passed before the state write.
            StateEventDivergenceError: If events could not be recorded after
                the state write.
            InfrastructureError: On storage failure before the state write.
        """
        fabric = Fabric.create(code, name, measure_unit, offer_status)
        return await self._commit(ctx, self._repository.save, fabric)

    async def update_fabric(
        self,
        ctx: InvocationContext,
        code: str,
        name: str,
        measure_unit: str,
        offer_status: str,
        expected_version: int,
    ) -> Fabric:
        """Update an ACTIVE fabric at ``expected_version``.

        Raises:
            FabricNotFoundError: If no ACTIVE fabric has the code.
            ConcurrencyConflictError: If ``expected_version`` is stale, or a
                concurrent writer moved the version first.
            ValidationError: If the new name is invalid.
        """
        fabric = await asyncio.to_thread(
            self._repository.get_active, code, timeout=ctx.remaining()
        )
        fabric.update(name, measure_unit, offer_status, expected_version)
        return await self._commit(ctx, self._repository.update, fabric)

    async def delete_fabric(
        self, ctx: InvocationContext, code: str, expected_version: int
    ) -> Fabric:
        """Mark an ACTIVE fabric DELETED at ``expected_version``.

        Raises:
            FabricNotFoundError: If no ACTIVE fabric has the code.
            ConcurrencyConflictError: If ``expected_version`` is stale, or a
                concurrent writer moved the version first.
        """
        fabric = await asyncio.to_thread(
            self._repository.get_active, code, timeout=ctx.remaining()
        )
        fabric.delete(expected_version)
        return await self._commit(ctx, self._repository.delete, fabric)

    # -- Queries ---------------------------------------------------------

    async def get_fabric(self, code: str) -> Fabric:
        return await asyncio.to_thread(self._repository.get_active, code)

    async def get_fabric_including_deleted(self, code: str) -> Fabric:
        return await asyncio.to_thread(self._repository.get_including_deleted, code)

    async def get_history(self, code: str) -> list[EventEnvelope]:
        """Recorded envelopes for ``code``, oldest first. Empty if none."""
        return await asyncio.to_thread(self._event_store.events_for, AGGREGATE_TYPE, code)

    # -- Pipeline --------------------------------------------------------

    async def _commit(self, ctx: InvocationContext, write: _StateWrite, fabric: Fabric) -> Fabric:
        """Write state and record its events as one unit the caller cannot cancel.

        On cancellation the unit still runs to completion; the caller's
        ``CancelledError`` is re-raised afterwards.
        """
        ctx.check_deadline("before_state_write")
        commit = asyncio.create_task(self._write_and_record(ctx, write, fabric))
        self._commits.add(commit)
        commit.add_done_callback(self._commits.discard)
        try:
            return await asyncio.shield(commit)
        except asyncio.CancelledError:
            logger.warning(
                "fabric_commit_completing_after_cancel",
                code=fabric.code,
                correlation_id=ctx.correlation_id,
            )
            await asyncio.wait([commit])
            if not commit.cancelled() and (exc := commit.exception()) is not None:
                logger.warning(
                    "fabric_commit_failed_after_cancel", code=fabric.code, error=str(exc)
                )
            raise

    async def _write_and_record(
        self, ctx: InvocationContext, write: _StateWrite, fabric: Fabric
    ) -> Fabric:
        written = await asyncio.to_thread(write, fabric, timeout=ctx.remaining())
        persisted = fabric if written is None else written
        await self._record_events(ctx, persisted)
        return persisted

    async def _record_events(self, ctx: InvocationContext, fabric: Fabric) -> None:
        events = fabric.collect_events()
        metadata = _metadata(ctx)
        envelopes = [
            EventEnvelope.from_domain_event(
                event,
                event_type=event_type_for(event),
                aggregate_type=AGGREGATE_TYPE,
                metadata=metadata,
            )
            for event in events
        ]
        if not envelopes:
            return

        try:
            ctx.check_deadline("before_event_append")
            await asyncio.to_thread(self._event_store.append, *envelopes)
        except DomainError as exc:
            self._reconciliation_required(ctx, fabric, envelopes, exc)
            raise StateEventDivergenceError(
                "State committed but events were not recorded",
                context={
                    "code": fabric.code,
                    "version": fabric.version,
                    "stage": getattr(exc, "stage", "event_append"),
                },
            ) from exc

        logger.info(
            "fabric_events_recorded",
            code=fabric.code,
            version=fabric.version,
            event_types=[e.event_type for e in envelopes],
            source=ctx.source.value,
            correlation_id=ctx.correlation_id,
        )

        if ctx.is_rest:
            await self._publish(envelopes)

    async def _publish(self, envelopes: list[EventEnvelope]) -> None:
        subject = self._settings.outbound_subject
        for envelope in envelopes:
            try:
                await self._publisher.publish(subject, envelope)
            except PublishError as exc:
                logger.error(
                    "fabric_event_publish_failed",
                    subject=subject,
                    event_id=envelope.event_id,
                    event_type=envelope.event_type,
                    error=str(exc),
                )

    @staticmethod
    def _reconciliation_required(
        ctx: InvocationContext,
        fabric: Fabric,
        envelopes: list[EventEnvelope],
        exc: Exception,
    ) -> None:
        details: dict[str, Any] = {
            "resource_type": RESOURCE_TYPE,
            "code": fabric.code,
            "version": fabric.version,
            "event_ids": [e.event_id for e in envelopes],
            "event_types": [e.event_type for e in envelopes],
            "source": ctx.source.value,
            "correlation_id": ctx.correlation_id,
            "error": str(exc),
        }
        logger.error("reconciliation_required", **details)
