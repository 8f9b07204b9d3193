"""Domain exception hierarchy for type-safe error handling.

Every failure the command pipeline can report is a subclass of
:class:`DomainError`. Each carries a machine-readable ``error_code`` and a
structured ``context`` dict so that both ingress paths (REST and the inbound
event feed) can decide what to do with it without string matching:

- ``ValidationError``: bad input, never retried.
- ``NotFoundError``: 404 synchronously, a no-op on the event feed.
- ``ConflictError`` and its subclasses: version mismatches, duplicate
  codes and illegal state transitions.
- ``InfrastructureError``: storage or transport failure. Surfaced as 5xx
  synchronously and left unacknowledged on the event feed for redelivery.

Example:
    >>> from textura.foundation.domain.exceptions import NotFoundError
    >>> raise NotFoundError("Fabric", "FAB1")
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ConcurrencyConflictError",
    "ConflictError",
    "DomainError",
    "DuplicateResourceError",
    "InfrastructureError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "ValidationError",
]


class DomainError(Exception):
    """Base class for all domain errors.

    Attributes:
        error_code: Machine-readable error code for client handling.
        message: Human-readable error description.
        context: Structured debugging information (aggregate codes, versions).

    Example:
        >>> raise DomainError("Operation failed", context={"code": "FAB1"})
        DomainError: Operation failed (code=FAB1)
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize domain error with message and optional context.

        Args:
            message: Human-readable error description.
            context: Structured debugging information. Keys should be snake_case.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class NotFoundError(DomainError):
    """Raised when a requested resource does not exist.

    Maps to HTTP 404 Not Found. Also raised by version-conditioned writes that
    matched no row: the caller cannot tell "never existed" apart from "version
    already moved" and must not assume either.

    Attributes:
        error_code: "RESOURCE_NOT_FOUND" (class constant).
        resource_type: Type of missing resource.
        resource_id: Identifier of missing resource.

    Example:
        >>> raise NotFoundError("Fabric", "FAB1")
        NotFoundError: Fabric not found: FAB1
    """

    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(self, resource_type: str, resource_id: str, **extra_context: Any) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type} not found: {resource_id}"
        context = {
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            **extra_context,
        }
        super().__init__(message, context)


class ValidationError(DomainError):
    """Raised when input fails domain validation rules.

    Maps to HTTP 422 Unprocessable Entity. The inbound event adapter drops
    messages that fail with this error instead of retrying them.

    Attributes:
        error_code: "VALIDATION_ERROR" (class constant).
        field: Field that failed validation.
        reason: Human-readable validation failure reason.

    Example:
        >>> raise ValidationError("name", "name must be 1-250 characters")
        ValidationError: Validation failed for 'name': name must be 1-250 characters
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str, **extra_context: Any) -> None:
        self.field = field
        self.reason = reason
        message = f"Validation failed for '{field}': {reason}"
        context = {
            "field": field,
            "reason": reason,
            **extra_context,
        }
        super().__init__(message, context)


class ConflictError(DomainError):
    """Raised when an operation conflicts with current system state.

    Maps to HTTP 409 Conflict.

    Attributes:
        error_code: "CONFLICT" (class constant).
        reason: Description of the conflict.
    """

    error_code: str = "CONFLICT"

    def __init__(self, reason: str, **context: Any) -> None:
        self.reason = reason
        message = f"Conflict: {reason}"
        super().__init__(message, context)


class ConcurrencyConflictError(ConflictError):
    """Raised when an expected version does not match the stored version.

    Raised by aggregates on stale ``expected_version`` arguments and by the
    event store when ``(aggregate_id, aggregate_version)`` is already taken.

    Attributes:
        error_code: "CONCURRENCY_CONFLICT" (class constant).
        expected_version: Version the caller believed was current.
        actual_version: Version actually observed, when known.

    Example:
        >>> raise ConcurrencyConflictError("Fabric", "FAB1", expected_version=1, actual_version=2)
    """

    error_code: str = "CONCURRENCY_CONFLICT"

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        *,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ) -> None:
        """Initialize concurrency conflict error.

        Args:
            resource_type: Type of the contended resource.
            resource_id: Identifier of the contended resource.
            expected_version: Version the caller believed was current.
            actual_version: Version actually observed, if known.
        """
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        context: dict[str, Any] = {
            "resource_type": resource_type,
            "resource_id": resource_id,
        }
        if expected_version is not None:
            context["expected_version"] = expected_version
        if actual_version is not None:
            context["actual_version"] = actual_version
        super().__init__(f"{resource_type} version mismatch", **context)


class DuplicateResourceError(ConflictError):
    """Raised when creating a resource whose identifier is already in use.

    Attributes:
        error_code: "DUPLICATE_RESOURCE" (class constant).
        resource_type: Type of the duplicated resource.
        resource_id: The identifier already in use.
    """

    error_code: str = "DUPLICATE_RESOURCE"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"{resource_type} already exists",
            resource_type=resource_type,
            resource_id=resource_id,
        )


class InvalidStateTransitionError(ConflictError):
    """Raised when a state machine transition is not allowed.

    Maps to HTTP 409 Conflict.

    Attributes:
        error_code: "INVALID_STATE_TRANSITION" (class constant).

    Example:
        >>> raise InvalidStateTransitionError(
        ...     "Cannot update fabric: current status is DELETED"
        ... )
    """

    error_code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, **context)


class InfrastructureError(DomainError):
    """Raised when a storage or transport dependency fails.

    Maps to HTTP 503 Service Unavailable. On the inbound event feed this is
    the only class of failure that is propagated for redelivery.

    Attributes:
        error_code: "INFRASTRUCTURE_ERROR" (class constant).
    """

    error_code: str = "INFRASTRUCTURE_ERROR"
