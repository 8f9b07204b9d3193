"""Fabrics service application factory.

Usage::

    from textura.domain.fabrics.app import create_fabrics_app

    app = create_fabrics_app()

Run with ``uvicorn --factory textura.domain.fabrics.app:create_fabrics_app``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from textura.domain.fabrics.lifespan import lifespan_contribution as fabrics_lifespan
from textura.domain.fabrics.router import router as fabrics_router
from textura.infra.eventsourcing import lifespan_contribution as event_store_lifespan
from textura.infra.fastapi import AppSettings, create_app
from textura.infra.messaging import (
    bus_lifespan_contribution,
    consumers_lifespan_contribution,
)
from textura.infra.observability import lifespan_contribution as observability_lifespan
from textura.infra.persistence import lifespan_contribution as persistence_lifespan

if TYPE_CHECKING:
    from fastapi import FastAPI


def create_fabrics_app(settings: AppSettings | None = None) -> FastAPI:
    """Create the fabrics service with its full startup sequence.

    Startup order: logging, database, message bus, event store, fabric
    service (registers the inbound handler), then consumers.
    """
    return create_app(
        settings=settings,
        routers=[fabrics_router],
        lifespan_hooks=[
            observability_lifespan,
            persistence_lifespan,
            bus_lifespan_contribution,
            event_store_lifespan,
            fabrics_lifespan,
            consumers_lifespan_contribution,
        ],
    )
