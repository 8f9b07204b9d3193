"""Event store lifespan hook.

Priority 100 runs after persistence (75) and the message bus (90), and
before the domain services (150) that append to the store.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from textura.foundation.application import (
    LIFESPAN_PRIORITY_EVENTSTORE,
    LifespanContribution,
)
from textura.infra.eventsourcing.event_store import EventStore, get_event_store_factory

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _event_store_lifespan(app: Any) -> AsyncIterator[None]:
    """Create the recorder on startup and close it on shutdown.

    Args:
        app: The application instance. ``app.state.event_store`` is set to
            an :class:`EventStore` over the configured recorder.
    """
    factory = get_event_store_factory()
    recorder = await asyncio.to_thread(lambda: factory.recorder)
    app.state.event_store = EventStore(recorder)
    logger.info("event_store_lifespan: event store ready")
    try:
        yield
    finally:
        factory.close()
        logger.info("event_store_lifespan: event store closed")


lifespan_contribution = LifespanContribution(
    hook=_event_store_lifespan,
    priority=LIFESPAN_PRIORITY_EVENTSTORE,
    name="event_store",
)
