"""Textura Foundation Application -- invocation context and contribution types."""

from textura.foundation.application.context import (
    CommandSource,
    DeadlineExceededError,
    InvocationContext,
)
from textura.foundation.application.contributions import (
    LIFESPAN_PRIORITY_CONSUMERS,
    LIFESPAN_PRIORITY_DOMAIN,
    LIFESPAN_PRIORITY_EVENTSTORE,
    LIFESPAN_PRIORITY_MESSAGING,
    LIFESPAN_PRIORITY_OBSERVABILITY,
    LIFESPAN_PRIORITY_PERSISTENCE,
    ErrorHandlerContribution,
    LifespanContribution,
    LifespanHook,
    MiddlewareContribution,
)

__all__ = [
    "LIFESPAN_PRIORITY_CONSUMERS",
    "LIFESPAN_PRIORITY_DOMAIN",
    "LIFESPAN_PRIORITY_EVENTSTORE",
    "LIFESPAN_PRIORITY_MESSAGING",
    "LIFESPAN_PRIORITY_OBSERVABILITY",
    "LIFESPAN_PRIORITY_PERSISTENCE",
    "CommandSource",
    "DeadlineExceededError",
    "ErrorHandlerContribution",
    "InvocationContext",
    "LifespanContribution",
    "LifespanHook",
    "MiddlewareContribution",
]
