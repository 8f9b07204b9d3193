"""Contribution types for assembling the application.

Infrastructure and domain packages describe what they add to the ASGI app
(lifespan hooks, middleware, exception handlers) with these dataclasses. The
app factory orders and installs them. They are framework-agnostic and live in
the foundation layer so that packages can declare contributions without
importing FastAPI.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Any

# Priority band constants for middleware ordering
MIDDLEWARE_PRIORITY_MIN = 0
MIDDLEWARE_PRIORITY_MAX = 499

# Lifespan priorities: lower starts first and shuts down last
LIFESPAN_PRIORITY_OBSERVABILITY = 10
LIFESPAN_PRIORITY_PERSISTENCE = 75
LIFESPAN_PRIORITY_MESSAGING = 90
LIFESPAN_PRIORITY_EVENTSTORE = 100
LIFESPAN_PRIORITY_DOMAIN = 150
LIFESPAN_PRIORITY_CONSUMERS = 200

LifespanHook = Callable[[Any], AbstractAsyncContextManager[None]]


@dataclass(frozen=True, slots=True)
class MiddlewareContribution:
    """Describes a middleware to register on the app.

    Attributes:
        middleware_class: The ASGI middleware class.
        priority: Lower numbers execute first (outermost). Must be in
            range [0, 499].
        kwargs: Keyword arguments passed to ``add_middleware()``.
    """

    middleware_class: type[Any]
    priority: int = 400
    kwargs: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not MIDDLEWARE_PRIORITY_MIN <= self.priority <= MIDDLEWARE_PRIORITY_MAX:
            msg = (
                f"Middleware priority must be between {MIDDLEWARE_PRIORITY_MIN} "
                f"and {MIDDLEWARE_PRIORITY_MAX}, got {self.priority}"
            )
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class ErrorHandlerContribution:
    """Maps an exception type to an async ``(Request, Exception) -> Response`` handler."""

    exception_class: type[BaseException]
    handler: Any


@dataclass(frozen=True, slots=True)
class LifespanContribution:
    """Describes a startup/shutdown hook.

    Attributes:
        hook: Async context manager factory ``(app) -> AsyncContextManager[None]``.
            Code before ``yield`` runs at startup, code after it at shutdown.
        priority: Lower priorities start first (and shut down last).
        name: Label used in startup logs.
    """

    hook: LifespanHook
    priority: int = 500
    name: str = ""
