"""Correlation ID middleware.

Pure ASGI middleware that extracts or generates the request's correlation ID,
exposes it through a context variable for the duration of the request and
echoes it on the response. Route handlers pass it into the invocation
context so recorded events carry it.
"""

from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

import structlog

from textura.foundation.application import MiddlewareContribution

if TYPE_CHECKING:
    from collections.abc import Callable

CORRELATION_ID_HEADER = "X-Correlation-ID"

_MAX_LENGTH = 128
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]+$")

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Get the current correlation ID, or ``""`` outside a request."""
    return correlation_id_ctx.get()


def _is_acceptable(value: str) -> bool:
    return 0 < len(value) <= _MAX_LENGTH and bool(_SAFE_ID.match(value))


def _extract_header(headers: list[tuple[bytes, bytes]], name: bytes) -> str:
    """Extract a header value from raw ASGI headers."""
    for key, value in headers:
        if key.lower() == name:
            return value.decode("latin-1")
    return ""


class CorrelationIdMiddleware:
    """Pure ASGI middleware for ``X-Correlation-ID`` propagation.

    This middleware:
    1. Extracts X-Correlation-ID from incoming request headers
    2. Generates a new UUID4 if the header is missing, too long or carries
       characters outside ``[A-Za-z0-9._:-]``
    3. Stores the ID in a context variable and binds it to structlog
    4. Adds X-Correlation-ID to response headers

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> app.add_middleware(CorrelationIdMiddleware)
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        correlation_id = _extract_header(scope.get("headers", []), b"x-correlation-id")
        if not _is_acceptable(correlation_id):
            correlation_id = str(uuid.uuid4())

        token = correlation_id_ctx.set(correlation_id)
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        async def send_with_correlation_id(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((b"x-correlation-id", correlation_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_with_correlation_id)
        finally:
            correlation_id_ctx.reset(token)
            structlog.contextvars.unbind_contextvars("correlation_id")


contribution = MiddlewareContribution(
    middleware_class=CorrelationIdMiddleware,
    priority=10,  # Outermost band (0-99)
)
