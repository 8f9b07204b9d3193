"""Inbound adapter: ERP fabric events to fabric commands.

Registered on the message router for the inbound subject. Every decision
here comes down to acknowledge or redeliver:

- Returning normally acknowledges the message. That covers success, benign
  no-ops (duplicate create, stale or out-of-order update/delete) and
  messages that can never succeed (malformed, invalid, unknown type).
- Raising leaves the message pending for redelivery. Only infrastructure
  failures are raised.

ERP versions name the version an event *produces*, so update and delete
commands are issued with ``expected_version = version - 1``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from textura.foundation.application.context import InvocationContext
from textura.foundation.domain.exceptions import (
    ConcurrencyConflictError,
    DuplicateResourceError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from textura.infra.messaging.envelope import EventEnvelope
from textura.infra.observability.logging import get_logger

if TYPE_CHECKING:
    from textura.domain.fabrics.fabric_service import FabricCommandService
    from textura.domain.fabrics.settings import FabricSettings
    from textura.infra.messaging.router import InboundMessage

logger = get_logger(__name__)


class ErpEventType(StrEnum):
    """Event types published by the ERP on the inbound subject."""

    CREATED = "erp.fabric.created"
    UPDATED = "erp.fabric.updated"
    DELETED = "erp.fabric.deleted"


class ErpFabricPayload(BaseModel):
    """Payload of an ERP fabric event.

    ``version`` is only meaningful for updates and deletes. When absent, the
    envelope's ``aggregate_version`` is used.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    fabric_code: str = ""
    fabric_name: str = ""
    measure_unit: str | None = None
    offer_status: str | None = None
    version: int | None = Field(default=None)


class FabricEventHandler:
    """Adapts ERP fabric envelopes to :class:`FabricCommandService` calls.

    Args:
        service: Command service shared with the REST path.
        settings: Supplies defaults for omitted fields and the command timeout.

    Example:
        >>> handler = FabricEventHandler(service, settings)
        >>> router.register(settings.inbound_subject, handler)
    """

    def __init__(self, service: FabricCommandService, settings: FabricSettings) -> None:
        self._service = service
        self._settings = settings

    async def __call__(self, message: InboundMessage) -> None:
        await self.handle(message)

    async def handle(self, message: InboundMessage) -> None:
        """Apply one inbound message.

        Raises:
            InfrastructureError: On storage failure; the message must be
                redelivered.
        """
        try:
            envelope = EventEnvelope.from_json(message.data)
            envelope.ensure_valid()
        except (pydantic.ValidationError, ValidationError) as exc:
            logger.error(
                "inbound_envelope_rejected",
                subject=message.subject,
                message_id=message.message_id,
                error=str(exc),
            )
            return

        try:
            payload = ErpFabricPayload.model_validate(envelope.payload)
        except pydantic.ValidationError as exc:
            logger.error(
                "inbound_payload_rejected",
                event_id=envelope.event_id,
                event_type=envelope.event_type,
                error=str(exc),
            )
            return

        ctx = InvocationContext.event(
            correlation_id=envelope.correlation_id,
            causation_id=envelope.event_id,
            user_id=envelope.user_id,
        ).with_timeout(self._settings.command_timeout_seconds)

        log = logger.bind(
            event_id=envelope.event_id,
            event_type=envelope.event_type,
            code=payload.fabric_code or envelope.aggregate_id,
        )

        match envelope.event_type:
            case ErpEventType.CREATED:
                await self._created(ctx, envelope, payload, log)
            case ErpEventType.UPDATED:
                await self._updated(ctx, envelope, payload, log)
            case ErpEventType.DELETED:
                await self._deleted(ctx, envelope, payload, log)
            case _:
                log.warning("inbound_unknown_event_type_discarded")

    # -- Per-type handling ------------------------------------------------

    async def _created(
        self,
        ctx: InvocationContext,
        envelope: EventEnvelope,
        payload: ErpFabricPayload,
        log: Any,
    ) -> None:
        code = payload.fabric_code or envelope.aggregate_id
        try:
            fabric = await self._service.create_fabric(
                ctx,
                code=code,
                name=payload.fabric_name,
                measure_unit=payload.measure_unit or self._settings.default_measure_unit,
                offer_status=payload.offer_status or self._settings.default_offer_status,
            )
        except DuplicateResourceError:
            log.info("inbound_fabric_exists_skipped")
            return
        except ValidationError as exc:
            log.error("inbound_fabric_invalid_dropped", error=str(exc))
            return
        log.info("inbound_fabric_created", version=fabric.version)

    async def _updated(
        self,
        ctx: InvocationContext,
        envelope: EventEnvelope,
        payload: ErpFabricPayload,
        log: Any,
    ) -> None:
        expected = self._expected_version(envelope, payload, log)
        if expected is None:
            return
        try:
            fabric = await self._service.update_fabric(
                ctx,
                code=payload.fabric_code or envelope.aggregate_id,
                name=payload.fabric_name,
                measure_unit=payload.measure_unit or self._settings.default_measure_unit,
                offer_status=payload.offer_status or self._settings.default_offer_status,
                expected_version=expected,
            )
        except (NotFoundError, ConcurrencyConflictError, InvalidStateTransitionError) as exc:
            log.warning(
                "inbound_fabric_update_skipped",
                reason=type(exc).__name__,
                expected_version=expected,
            )
            return
        except ValidationError as exc:
            log.error("inbound_fabric_invalid_dropped", error=str(exc))
            return
        log.info("inbound_fabric_updated", version=fabric.version)

    async def _deleted(
        self,
        ctx: InvocationContext,
        envelope: EventEnvelope,
        payload: ErpFabricPayload,
        log: Any,
    ) -> None:
        expected = self._expected_version(envelope, payload, log)
        if expected is None:
            return
        try:
            fabric = await self._service.delete_fabric(
                ctx,
                code=payload.fabric_code or envelope.aggregate_id,
                expected_version=expected,
            )
        except (NotFoundError, ConcurrencyConflictError, InvalidStateTransitionError) as exc:
            log.info(
                "inbound_fabric_delete_skipped",
                reason=type(exc).__name__,
                expected_version=expected,
            )
            return
        log.info("inbound_fabric_deleted", version=fabric.version)

    @staticmethod
    def _expected_version(
        envelope: EventEnvelope, payload: ErpFabricPayload, log: Any
    ) -> int | None:
        version = payload.version if payload.version is not None else envelope.aggregate_version
        if version <= 0:
            log.error("inbound_fabric_version_invalid", version=version)
            return None
        return version - 1
