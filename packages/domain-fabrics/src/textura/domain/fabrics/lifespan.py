"""Fabrics lifespan hook.

Priority 150 runs after persistence, the message bus and the event store
(which it consumes from ``app.state``) and before the consumers hook, so the
inbound handler is registered before the subscriber starts reading.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from textura.domain.fabrics.fabric_service import FabricCommandService
from textura.domain.fabrics.inbound import FabricEventHandler
from textura.domain.fabrics.infrastructure.fabric_repository import SqlFabricRepository
from textura.domain.fabrics.settings import get_fabric_settings
from textura.foundation.application import LIFESPAN_PRIORITY_DOMAIN, LifespanContribution

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _fabrics_lifespan(app: Any) -> AsyncIterator[None]:
    """Build the fabric command service and register its inbound handler.

    Reads ``database_manager``, ``event_store``, ``publisher`` and
    ``message_router`` from ``app.state``; sets ``app.state.fabric_service``.
    """
    settings = get_fabric_settings()

    repository = SqlFabricRepository(app.state.database_manager.get_session_factory())
    await asyncio.to_thread(repository.ensure_schema)

    service = FabricCommandService(
        repository=repository,
        event_store=app.state.event_store,
        publisher=app.state.publisher,
        settings=settings,
    )
    app.state.fabric_service = service
    app.state.message_router.register(
        settings.inbound_subject, FabricEventHandler(service, settings)
    )
    logger.info(
        "fabrics_lifespan: service ready (inbound=%s, outbound=%s)",
        settings.inbound_subject,
        settings.outbound_subject,
    )
    yield


lifespan_contribution = LifespanContribution(
    hook=_fabrics_lifespan,
    priority=LIFESPAN_PRIORITY_DOMAIN,
    name="fabrics",
)
