"""Message bus lifespan hooks.

Two hooks bracket the domain services:

- ``bus`` (priority 90) creates the router and the outward publisher and
  stores them on ``app.state`` so domain hooks can register handlers.
- ``consumers`` (priority 200) starts the subscriber for every subject that
  has a registered handler, and stops it first on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from textura.foundation.application import (
    LIFESPAN_PRIORITY_CONSUMERS,
    LIFESPAN_PRIORITY_MESSAGING,
    LifespanContribution,
)
from textura.infra.messaging.publisher import InMemoryPublisher, RedisStreamPublisher
from textura.infra.messaging.router import MessageRouter
from textura.infra.messaging.settings import get_messaging_settings
from textura.infra.messaging.subscriber import RedisStreamSubscriber
from textura.infra.persistence.redis_client import get_redis_factory

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _bus_lifespan(app: Any) -> AsyncIterator[None]:
    settings = get_messaging_settings()
    app.state.message_router = MessageRouter()

    if settings.enabled:
        client = await get_redis_factory().get_client()
        await client.ping()
        app.state.publisher = RedisStreamPublisher(
            client, max_stream_length=settings.max_stream_length
        )
        logger.info("messaging_lifespan: redis stream publisher ready")
    else:
        app.state.publisher = InMemoryPublisher()
        logger.info("messaging_lifespan: bus disabled, using in-memory publisher")
    yield


@asynccontextmanager
async def _consumers_lifespan(app: Any) -> AsyncIterator[None]:
    settings = get_messaging_settings()
    router: MessageRouter = app.state.message_router
    if not settings.enabled or not router.subjects:
        logger.info("messaging_lifespan: no subscriber started")
        yield
        return

    client = await get_redis_factory().get_client()
    subscriber = RedisStreamSubscriber(
        client,
        router,
        group=settings.consumer_group,
        consumer=settings.consumer_name,
        block_ms=settings.block_ms,
        claim_idle_ms=settings.claim_idle_ms,
        claim_interval_s=settings.claim_interval_seconds,
    )
    await subscriber.start(router.subjects)
    app.state.subscriber = subscriber
    try:
        yield
    finally:
        await subscriber.stop()


bus_lifespan_contribution = LifespanContribution(
    hook=_bus_lifespan,
    priority=LIFESPAN_PRIORITY_MESSAGING,
    name="bus",
)

consumers_lifespan_contribution = LifespanContribution(
    hook=_consumers_lifespan,
    priority=LIFESPAN_PRIORITY_CONSUMERS,
    name="consumers",
)
