"""Persistence lifespan hook for startup/shutdown resource management.

Priority 75 starts persistence after logging is configured and before the
event store and domain services that depend on it.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from textura.foundation.application import (
    LIFESPAN_PRIORITY_PERSISTENCE,
    LifespanContribution,
)
from textura.infra.persistence.database import DatabaseManager, get_database_manager
from textura.infra.persistence.redis_client import get_redis_factory

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


def _check_database(manager: DatabaseManager) -> None:
    with manager.get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))


@asynccontextmanager
async def _persistence_lifespan(app: Any) -> AsyncIterator[None]:
    """Verify database connectivity on startup; release pools on shutdown.

    Args:
        app: The application instance. ``app.state.database_manager`` is set
            so that later hooks and request handlers share one manager.
    """
    manager = get_database_manager()
    app.state.database_manager = manager

    await asyncio.to_thread(_check_database, manager)
    logger.info("persistence_lifespan: database health check passed")

    try:
        yield
    finally:
        manager.dispose()
        logger.info("persistence_lifespan: database engine disposed")

        try:
            await get_redis_factory().close()
            logger.info("persistence_lifespan: redis client closed")
        except Exception:
            logger.warning("persistence_lifespan: failed to close redis client", exc_info=True)


lifespan_contribution = LifespanContribution(
    hook=_persistence_lifespan,
    priority=LIFESPAN_PRIORITY_PERSISTENCE,
    name="persistence",
)
