"""Messaging error types."""

from __future__ import annotations

from textura.foundation.domain.exceptions import InfrastructureError, ValidationError


class InvalidEnvelopeError(ValidationError):
    """Raised when an envelope is missing a required field.

    Attributes:
        field: Name of the first empty required field.
        reason: ``"<field words> is required"``, e.g. ``"event type is required"``.
    """

    def __init__(self, field: str) -> None:
        super().__init__(field, f"{field.replace('_', ' ').replace(' id', ' ID')} is required")


class PublishError(InfrastructureError):
    """Raised when an envelope cannot be written to the outward transport."""

    def __init__(self, subject: str, event_id: str, cause: Exception) -> None:
        super().__init__(
            f"Failed to publish to {subject}: {cause}",
            context={"subject": subject, "event_id": event_id},
        )
        self.subject = subject
        self.event_id = event_id
