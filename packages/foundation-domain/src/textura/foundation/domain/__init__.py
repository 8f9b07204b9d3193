"""Textura Foundation Domain -- pure Python domain primitives.

This package provides the building blocks shared by every bounded context:
the exception taxonomy, the aggregate base class, and the domain event base.
"""

from textura.foundation.domain.aggregates import BaseAggregate
from textura.foundation.domain.events import BaseEvent
from textura.foundation.domain.exceptions import (
    ConcurrencyConflictError,
    ConflictError,
    DomainError,
    DuplicateResourceError,
    InfrastructureError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "BaseAggregate",
    "BaseEvent",
    "ConcurrencyConflictError",
    "ConflictError",
    "DomainError",
    "DuplicateResourceError",
    "InfrastructureError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "ValidationError",
]
