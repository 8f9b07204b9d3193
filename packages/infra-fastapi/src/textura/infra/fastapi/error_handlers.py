"""RFC 7807 problem responses for the domain error taxonomy.

Every failure leaves the API as ``application/problem+json``. Domain errors
are mapped by class through :data:`PROBLEM_TYPES`: a ``ConcurrencyConflictError``
is reported as a conflict and an unmapped ``DomainError`` subclass as a bad
request.

Usage:
    from textura.infra.fastapi.error_handlers import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from textura.foundation.domain.exceptions import (
    ConflictError,
    DomainError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from textura.infra.fastapi.middleware.correlation_id import get_correlation_id

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


class ProblemDetail(BaseModel):
    """Problem document body.

    ``type``, ``title``, ``status``, ``detail`` and ``instance`` are the RFC 7807
    members. ``error_code`` and ``context`` come from the raised
    :class:`DomainError`; ``correlation_id`` is only set on 5xx responses so
    operators can find the matching log entries.
    """

    type: str = Field(..., examples=["/errors/not-found", "/errors/conflict"])
    title: str
    status: int = Field(..., ge=400, le=599)
    detail: str
    instance: str | None = None
    error_code: str | None = Field(default=None, examples=["CONCURRENCY_CONFLICT"])
    context: dict[str, Any] | None = None
    correlation_id: str | None = None


@dataclass(frozen=True, slots=True)
class ProblemType:
    """How one class of domain error is rendered."""

    uri: str
    title: str
    status: int
    log_as_error: bool = False


PROBLEM_TYPES: dict[type[DomainError], ProblemType] = {
    NotFoundError: ProblemType("/errors/not-found", "Resource Not Found", 404),
    ValidationError: ProblemType("/errors/validation-error", "Validation Error", 422),
    ConflictError: ProblemType("/errors/conflict", "Conflict", 409),
    InfrastructureError: ProblemType(
        "/errors/service-unavailable", "Service Unavailable", 503, log_as_error=True
    ),
    DomainError: ProblemType("/errors/domain-error", "Bad Request", 400),
}

# Credentials that can end up inside driver error messages
_REDACTIONS = (
    (
        re.compile(r"(postgres(?:ql)?(?:\+\w+)?)://[^@\s]*@[^/\s]*"),
        r"\1://[REDACTED]@[REDACTED]",
    ),
    (re.compile(r"(rediss?)://[^@\s]*@[^/\s]*"), r"\1://[REDACTED]@[REDACTED]"),
    (
        re.compile(r"\b(password|token)\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE),
        r"\1=[REDACTED]",
    ),
)

_SENSITIVE_KEYS = frozenset({"password", "secret", "token", "api_key", "apikey", "credential"})


def _problem_for(exc: DomainError) -> ProblemType:
    # Entries are ordered specific to general
    for cls, problem_type in PROBLEM_TYPES.items():
        if isinstance(exc, cls):
            return problem_type
    return PROBLEM_TYPES[DomainError]


def _respond(problem: ProblemDetail) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
    )


def _redact(text: str) -> str:
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


def _sanitize_context(context: dict[str, Any] | None) -> dict[str, Any] | None:
    """Make an error context safe and JSON-ready.

    Sensitive keys are dropped, credentials inside strings are redacted and
    anything ``json`` cannot encode is stringified. Returns ``None`` when
    nothing is left.
    """
    if not context:
        return None
    cleaned = {
        key: _sanitize_value(value)
        for key, value in context.items()
        if key.lower() not in _SENSITIVE_KEYS
    }
    return cleaned or None


def _sanitize_value(value: Any) -> Any:
    match value:
        case str():
            return _redact(value)
        case UUID():
            return str(value)
        case datetime():
            return value.isoformat()
        case dict():
            return _sanitize_context(value)
        case list() | tuple():
            return [_sanitize_value(item) for item in value]
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def _correlation_id() -> str:
    return get_correlation_id() or "unknown"


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Render any :class:`DomainError` using its :data:`PROBLEM_TYPES` entry."""
    problem_type = _problem_for(exc)
    correlation_id: str | None = None
    if problem_type.status >= 500:
        correlation_id = _correlation_id()
    if problem_type.log_as_error:
        logger.error(
            "domain_error: %s %s -> %d %s: %s",
            request.method,
            request.url.path,
            problem_type.status,
            exc.error_code,
            exc,
        )
    return _respond(
        ProblemDetail(
            type=problem_type.uri,
            title=problem_type.title,
            status=problem_type.status,
            detail=_redact(str(exc)),
            instance=request.url.path,
            error_code=exc.error_code,
            context=_sanitize_context(exc.context),
            correlation_id=correlation_id,
        )
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Report FastAPI body, path and query validation failures as 422."""
    errors = [
        {
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    return _respond(
        ProblemDetail(
            type="/errors/request-validation-error",
            title="Request Validation Error",
            status=422,
            detail="Request validation failed",
            instance=request.url.path,
            error_code="REQUEST_VALIDATION_ERROR",
            context={"errors": errors},
        )
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort 500.

    The exception is logged in full; the response only names it when the app
    runs in debug mode.
    """
    correlation_id = _correlation_id()
    logger.exception(
        "unhandled_exception: %s %s (correlation_id=%s)",
        request.method,
        request.url.path,
        correlation_id,
    )

    context: dict[str, Any] | None = None
    if getattr(request.app, "debug", False):
        detail = f"{type(exc).__name__}: {exc}"
        context = {"exception_type": type(exc).__name__}
    else:
        detail = "An internal error occurred. Quote the correlation ID when reporting it."

    return _respond(
        ProblemDetail(
            type="/errors/internal-error",
            title="Internal Server Error",
            status=500,
            detail=detail,
            instance=request.url.path,
            error_code="INTERNAL_ERROR",
            context=context,
            correlation_id=correlation_id,
        )
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the problem handlers on ``app``.

    Starlette resolves handlers along the exception's MRO, so registering one
    handler for ``DomainError`` covers the whole taxonomy; the per-class
    status comes from :data:`PROBLEM_TYPES`.
    """
    # Starlette types handlers as (Request, Exception)
    app.add_exception_handler(DomainError, domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError,
        request_validation_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, unhandled_exception_handler)
