"""Textura Infra FastAPI -- app factory, RFC 7807 error handlers, middleware."""

from textura.infra.fastapi.app_factory import create_app
from textura.infra.fastapi.error_handlers import (
    ProblemDetail,
    register_exception_handlers,
)
from textura.infra.fastapi.lifespan import compose_lifespan
from textura.infra.fastapi.middleware.correlation_id import (
    CORRELATION_ID_HEADER,
    CorrelationIdMiddleware,
    get_correlation_id,
)
from textura.infra.fastapi.settings import AppSettings, CORSSettings

__all__ = [
    "CORRELATION_ID_HEADER",
    "AppSettings",
    "CORSSettings",
    "CorrelationIdMiddleware",
    "ProblemDetail",
    "compose_lifespan",
    "create_app",
    "get_correlation_id",
    "register_exception_handlers",
]
