"""Event envelope: the durable and transmissible form of one domain fact.

The envelope is what the event store records and what travels over the
message bus in both directions. Its JSON shape is the wire contract with
external consumers and producers:

.. code-block:: json

    {
      "event_id": "3f1c...",
      "event_type": "app.fabric.created",
      "aggregate_id": "FAB1",
      "aggregate_type": "fabric",
      "aggregate_version": 1,
      "event_version": 1,
      "timestamp": "2024-05-01T10:00:00Z",
      "correlation_id": "req-42",
      "payload": {"code": "FAB1", "name": "Cotton"}
    }

``correlation_id``, ``causation_id`` and ``user_id`` are omitted from the
wire form when empty.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from textura.infra.messaging.errors import InvalidEnvelopeError

if TYPE_CHECKING:
    from textura.foundation.domain.events import BaseEvent

ENVELOPE_SCHEMA_VERSION = 1

_OPTIONAL_FIELDS = ("correlation_id", "causation_id", "user_id")


@dataclass(frozen=True, slots=True)
class EnvelopeMetadata:
    """Optional tracing fields stamped onto new envelopes.

    Each field defaults to empty, which leaves it off the wire.
    """

    correlation_id: str = ""
    causation_id: str = ""
    user_id: str = ""


def _new_event_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EventEnvelope(BaseModel):
    """Immutable wrapper around one domain fact.

    ``(aggregate_id, aggregate_version)`` identifies the fact within its
    aggregate's history; the event store enforces that pair's uniqueness.
    Decoding is lenient (missing fields fall back to empty values) so that
    :meth:`ensure_valid` can name the first missing field.

    Example:
        >>> envelope = EventEnvelope.create(
        ...     event_type="app.fabric.created",
        ...     aggregate_id="FAB1",
        ...     aggregate_type="fabric",
        ...     aggregate_version=1,
        ...     payload={"code": "FAB1"},
        ... )
        >>> envelope.ensure_valid()
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    event_id: str = Field(default_factory=_new_event_id)
    event_type: str = ""
    aggregate_id: str = ""
    aggregate_type: str = ""
    aggregate_version: int = 0
    event_version: int = ENVELOPE_SCHEMA_VERSION
    timestamp: datetime = Field(default_factory=_utcnow)
    correlation_id: str = ""
    causation_id: str = ""
    user_id: str = ""
    payload: dict[str, Any] | None = None

    @classmethod
    def create(
        cls,
        *,
        event_type: str,
        aggregate_id: str,
        aggregate_type: str,
        aggregate_version: int,
        payload: dict[str, Any],
        metadata: EnvelopeMetadata | None = None,
        timestamp: datetime | None = None,
    ) -> EventEnvelope:
        """Build a new envelope with a fresh ``event_id``.

        Args:
            event_type: Namespaced type, e.g. ``"app.fabric.updated"``.
            aggregate_id: Identifier of the aggregate the fact belongs to.
            aggregate_type: Aggregate kind, e.g. ``"fabric"``.
            aggregate_version: Version the fact produced.
            payload: Fact-specific fields.
            metadata: Optional correlation, causation and user ids.
            timestamp: Occurrence time; defaults to now (UTC).
        """
        meta = metadata or EnvelopeMetadata()
        return cls(
            event_type=event_type,
            aggregate_id=aggregate_id,
            aggregate_type=aggregate_type,
            aggregate_version=aggregate_version,
            timestamp=timestamp or _utcnow(),
            correlation_id=meta.correlation_id,
            causation_id=meta.causation_id,
            user_id=meta.user_id,
            payload=payload,
        )

    @classmethod
    def from_domain_event(
        cls,
        event: BaseEvent,
        *,
        event_type: str,
        aggregate_type: str,
        metadata: EnvelopeMetadata | None = None,
    ) -> EventEnvelope:
        """Wrap a domain event, taking identity, version and time from it."""
        return cls.create(
            event_type=event_type,
            aggregate_id=event.originator_id,
            aggregate_type=aggregate_type,
            aggregate_version=event.originator_version,
            payload=event.to_payload(),
            metadata=metadata,
            timestamp=event.timestamp,
        )

    @classmethod
    def from_json(cls, data: str | bytes) -> EventEnvelope:
        """Decode the wire form.

        Raises:
            pydantic.ValidationError: If ``data`` is not a JSON object of the
                envelope's shape.
        """
        return cls.model_validate_json(data)

    def ensure_valid(self) -> None:
        """Check that the fields required downstream are present.

        Checked in order: event type, aggregate ID, aggregate type, payload.

        Raises:
            InvalidEnvelopeError: Naming the first empty required field.
        """
        if not self.event_type:
            raise InvalidEnvelopeError("event_type")
        if not self.aggregate_id:
            raise InvalidEnvelopeError("aggregate_id")
        if not self.aggregate_type:
            raise InvalidEnvelopeError("aggregate_type")
        if not self.payload:
            raise InvalidEnvelopeError("payload")

    def to_json(self) -> str:
        """Encode the wire form, omitting empty optional tracing fields."""
        exclude = {name for name in _OPTIONAL_FIELDS if not getattr(self, name)}
        return self.model_dump_json(exclude=exclude)
