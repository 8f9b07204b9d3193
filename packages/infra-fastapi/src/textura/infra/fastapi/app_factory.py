"""FastAPI application factory.

Provides :func:`create_app`, which wires routers, middleware, error handlers
and lifespan hooks contributed by the infrastructure and domain packages
into one FastAPI application.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from textura.infra.fastapi._health import router as health_router
from textura.infra.fastapi.error_handlers import register_exception_handlers
from textura.infra.fastapi.lifespan import compose_lifespan
from textura.infra.fastapi.middleware.correlation_id import (
    contribution as correlation_id_contribution,
)
from textura.infra.fastapi.settings import AppSettings

if TYPE_CHECKING:
    from fastapi import APIRouter

    from textura.foundation.application import (
        ErrorHandlerContribution,
        LifespanContribution,
        MiddlewareContribution,
    )

logger = logging.getLogger(__name__)


def create_app(
    settings: AppSettings | None = None,
    *,
    routers: list[APIRouter] | None = None,
    lifespan_hooks: list[LifespanContribution] | None = None,
    middleware: list[MiddlewareContribution] | None = None,
    error_handlers: list[ErrorHandlerContribution] | None = None,
) -> FastAPI:
    """Create a FastAPI application from explicit contributions.

    The correlation-ID middleware, the RFC 7807 exception handlers and the
    ``/healthz`` router are always installed. Everything else is passed in.

    Args:
        settings: Application settings. If ``None``, loaded from environment.
        routers: Routers to include.
        lifespan_hooks: Startup/shutdown hooks, ordered by priority.
        middleware: Middleware in addition to the correlation-ID middleware.
        error_handlers: Handlers registered after the default ones, so they
            override them for the same exception class.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or AppSettings()

    app = FastAPI(
        title=settings.title,
        version=settings.version,
        description=settings.description,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        debug=settings.debug,
        lifespan=compose_lifespan(list(lifespan_hooks or [])),
    )

    app.add_middleware(CORSMiddleware, **settings.cors.model_dump())
    _install_middleware(app, [correlation_id_contribution, *(middleware or [])])

    register_exception_handlers(app)
    for contribution in error_handlers or []:
        app.add_exception_handler(contribution.exception_class, contribution.handler)
        logger.info("error handler added for %s", contribution.exception_class.__name__)

    for router in [health_router, *(routers or [])]:
        app.include_router(router)
        logger.info("router included at %s", router.prefix or "/")

    return app


def _install_middleware(app: FastAPI, contributions: list[MiddlewareContribution]) -> None:
    # Starlette wraps the most recently added middleware outermost, so the
    # lowest priority is added last and sees requests first.
    for contribution in reversed(sorted(contributions, key=lambda c: c.priority)):
        app.add_middleware(contribution.middleware_class, **contribution.kwargs)
        logger.info(
            "middleware %s added (priority=%d)",
            contribution.middleware_class.__name__,
            contribution.priority,
        )
