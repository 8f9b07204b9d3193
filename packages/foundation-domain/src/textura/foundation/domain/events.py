"""Base event class for domain events emitted by aggregates.

Domain events are immutable records of a single state change. They live only
in memory: an aggregate queues them as it mutates, and the orchestrating
service drains them and wraps each one in a transport envelope before
recording it.

Example:
    Define a domain event by subclassing BaseEvent::

        from dataclasses import dataclass
        from textura.foundation.domain.events import BaseEvent

        @dataclass(frozen=True, kw_only=True)
        class FabricCreated(BaseEvent):
            name: str

        FabricCreated(originator_id="FAB1", originator_version=1, name="Linen").to_payload()
        # Returns: {"name": "Linen"}
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, kw_only=True)
class BaseEvent:
    """Base class for all domain events.

    Attributes:
        originator_id: Identifier of the aggregate that emitted this event.
        originator_version: Aggregate version this event produced.
        timestamp: Event occurrence time (UTC).

    Note:
        Events are frozen dataclasses. Attempting to modify any field after
        instantiation raises ``FrozenInstanceError``.
    """

    originator_id: str
    originator_version: int
    timestamp: datetime = field(default_factory=_utcnow)

    # Fields that describe the envelope rather than the fact itself
    _METADATA_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"originator_id", "originator_version", "timestamp"}
    )

    def __post_init__(self) -> None:
        if not self.originator_id:
            raise ValueError("originator_id must not be empty")
        if self.originator_version < 1:
            raise ValueError(f"originator_version must be >= 1, got {self.originator_version}")

    def to_payload(self) -> dict[str, Any]:
        """Return the event-specific fields as a JSON-compatible dict.

        Identity and ordering metadata (``originator_id``,
        ``originator_version``, ``timestamp``) are excluded: envelopes carry
        them in their own fields.
        """
        return {
            f.name: _to_json_value(getattr(self, f.name))
            for f in dataclasses.fields(self)
            if f.name not in self._METADATA_FIELDS
        }


def _to_json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value
