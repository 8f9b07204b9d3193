"""Base aggregate class for versioned, event-emitting entities.

Aggregates here are plain in-memory state machines. They are persisted as one
current-state row each, not rebuilt from their history, so this base class
only tracks the version counter and the queue of pending domain events.

Example:
    >>> from dataclasses import dataclass
    >>> from textura.foundation.domain.aggregates import BaseAggregate
    >>> from textura.foundation.domain.events import BaseEvent
    >>>
    >>> @dataclass(frozen=True, kw_only=True)
    ... class Renamed(BaseEvent):
    ...     name: str
    >>>
    >>> class Thing(BaseAggregate):
    ...     def __init__(self, key: str) -> None:
    ...         super().__init__(version=0)
    ...         self.key = key
    ...
    ...     def rename(self, name: str) -> None:
    ...         self.name = name
    ...         self._trigger(Renamed(originator_id=self.key,
    ...                               originator_version=self._next_version()))
"""

from __future__ import annotations

from typing import Generic, TypeVar

from textura.foundation.domain.events import BaseEvent

E = TypeVar("E", bound=BaseEvent)


class BaseAggregate(Generic[E]):
    """Base class for all domain aggregates.

    Mutating commands follow a strict discipline: increment ``version`` by
    exactly one and queue exactly one event. :meth:`_trigger` enforces the
    pairing by rejecting events whose ``originator_version`` is not the
    aggregate's new version.

    Attributes:
        version: Current version. A new aggregate starts at 0 and reaches 1
            with its creation event.

    Usage Pattern:
        Subclasses must:
        1. Validate command input before touching any attribute
        2. Compute the new version with ``_next_version()``
        3. Apply the state change, then call ``_trigger(event)``
    """

    def __init__(self, *, version: int) -> None:
        self.version = version
        self._pending_events: list[E] = []

    def _next_version(self) -> int:
        return self.version + 1

    def _trigger(self, event: E) -> None:
        """Record a state change.

        Args:
            event: The event describing the change. Its ``originator_version``
                becomes the aggregate's version.

        Raises:
            ValueError: If the event does not advance the version by exactly one.
        """
        if event.originator_version != self.version + 1:
            raise ValueError(
                f"event version {event.originator_version} does not follow "
                f"aggregate version {self.version}"
            )
        self.version = event.originator_version
        self._pending_events.append(event)

    @property
    def pending_events(self) -> tuple[E, ...]:
        """Events recorded since the last :meth:`collect_events` call."""
        return tuple(self._pending_events)

    def collect_events(self) -> list[E]:
        """Drain and return the pending events in emission order."""
        events, self._pending_events = self._pending_events, []
        return events
