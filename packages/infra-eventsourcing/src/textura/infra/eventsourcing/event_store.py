"""Append-only event trail backed by an eventsourcing application recorder.

Each envelope becomes one ``StoredEvent``:

- ``originator_id``: ``uuid5(EVENT_STREAM_NAMESPACE, "<aggregate_type>:<aggregate_id>")``
- ``originator_version``: the envelope's ``aggregate_version``
- ``topic``: the envelope's ``event_type``
- ``state``: the envelope's JSON wire form

The recorder's unique ``(originator_id, originator_version)`` constraint is
what guarantees exactly one recorded fact per aggregate version.

Example:
    >>> from textura.infra.eventsourcing import EventStore, get_event_store_factory
    >>> store = EventStore(get_event_store_factory().recorder)
    >>> store.append(envelope)
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import TYPE_CHECKING
from uuid import UUID, uuid5

from eventsourcing.persistence import (
    InfrastructureFactory,
    IntegrityError,
    PersistenceError,
    StoredEvent,
)
from eventsourcing.utils import Environment

from textura.foundation.domain.exceptions import (
    ConcurrencyConflictError,
    InfrastructureError,
)
from textura.infra.eventsourcing.settings import EventSourcingSettings
from textura.infra.messaging.envelope import EventEnvelope

if TYPE_CHECKING:
    from eventsourcing.persistence import ApplicationRecorder

logger = logging.getLogger(__name__)

EVENT_STREAM_NAMESPACE = UUID("6f1d3c52-8b0e-4f7a-9d21-3a5c7e9b1f40")


class EventStoreError(InfrastructureError):
    """Raised when the recorder fails for a reason other than a version clash."""


def stream_id(aggregate_type: str, aggregate_id: str) -> UUID:
    """Deterministic recorder stream id for one aggregate instance."""
    return uuid5(EVENT_STREAM_NAMESPACE, f"{aggregate_type}:{aggregate_id}")


class EventStore:
    """Records envelopes atomically and reads an aggregate's trail back.

    Args:
        recorder: Any eventsourcing ``ApplicationRecorder`` (PostgreSQL,
            SQLite or POPO).
    """

    def __init__(self, recorder: ApplicationRecorder) -> None:
        self._recorder = recorder

    @property
    def recorder(self) -> ApplicationRecorder:
        return self._recorder

    def append(self, *envelopes: EventEnvelope) -> None:
        """Persist a batch of envelopes in one transaction.

        Either every envelope is recorded or none is. An empty batch is a
        no-op.

        Raises:
            InvalidEnvelopeError: If any envelope is missing a required field.
                Nothing is written.
            ConcurrencyConflictError: If any ``(aggregate, version)`` pair is
                already recorded.
            EventStoreError: On any other storage failure.
        """
        if not envelopes:
            return
        for envelope in envelopes:
            envelope.ensure_valid()

        stored = [
            StoredEvent(
                originator_id=stream_id(e.aggregate_type, e.aggregate_id),
                originator_version=e.aggregate_version,
                topic=e.event_type,
                state=e.to_json().encode("utf-8"),
            )
            for e in envelopes
        ]
        first = envelopes[0]
        try:
            self._recorder.insert_events(stored)
        except IntegrityError as exc:
            clash = self._clashing(envelopes)
            logger.warning(
                "event_store: version already recorded for %s %s v%d",
                clash.aggregate_type,
                clash.aggregate_id,
                clash.aggregate_version,
            )
            raise ConcurrencyConflictError(
                clash.aggregate_type,
                clash.aggregate_id,
                expected_version=clash.aggregate_version - 1,
            ) from exc
        except PersistenceError as exc:
            raise EventStoreError(
                f"Failed to append events: {exc}",
                context={
                    "aggregate_type": first.aggregate_type,
                    "aggregate_id": first.aggregate_id,
                    "count": len(envelopes),
                },
            ) from exc

    def _clashing(self, envelopes: tuple[EventEnvelope, ...]) -> EventEnvelope:
        """The envelope whose version is taken, by the store or earlier in the batch.

        Falls back to the first envelope when the recorder cannot say.
        """
        batch: set[tuple[UUID, int]] = set()
        for envelope in envelopes:
            stream = stream_id(envelope.aggregate_type, envelope.aggregate_id)
            version = envelope.aggregate_version
            if (stream, version) in batch:
                return envelope
            batch.add((stream, version))
            try:
                taken = self._recorder.select_events(stream, gt=version - 1, lte=version, limit=1)
            except PersistenceError:
                break
            if taken:
                return envelope
        return envelopes[0]

    def events_for(self, aggregate_type: str, aggregate_id: str) -> list[EventEnvelope]:
        """Return the recorded envelopes for one aggregate, oldest first.

        Raises:
            EventStoreError: If the recorder cannot be read.
        """
        try:
            stored = self._recorder.select_events(stream_id(aggregate_type, aggregate_id))
        except PersistenceError as exc:
            raise EventStoreError(
                f"Failed to read events: {exc}",
                context={"aggregate_type": aggregate_type, "aggregate_id": aggregate_id},
            ) from exc
        return [EventEnvelope.from_json(s.state) for s in stored]


class EventStoreFactory:
    """Builds and owns the eventsourcing infrastructure for the event trail.

    Usage:
        factory = EventStoreFactory.from_env()
        store = EventStore(factory.recorder)
        factory.close()
    """

    def __init__(self, settings: EventSourcingSettings) -> None:
        self._settings = settings
        self._infrastructure_factory: InfrastructureFactory | None = None
        self._recorder: ApplicationRecorder | None = None

    @classmethod
    def from_env(cls) -> EventStoreFactory:
        """Create factory from the environment.

        ``PERSISTENCE_MODULE`` and the ``POSTGRES_*`` variables take
        precedence; otherwise ``DATABASE_URL`` is used when present so the
        event trail shares the current-state database.
        """
        database_url = os.getenv("DATABASE_URL")
        if database_url and not os.getenv("PERSISTENCE_MODULE"):
            return cls(EventSourcingSettings.from_database_url(database_url))
        return cls(EventSourcingSettings())

    @property
    def settings(self) -> EventSourcingSettings:
        return self._settings

    @property
    def recorder(self) -> ApplicationRecorder:
        """The application recorder, created (with its table) on first access."""
        if self._recorder is None:
            env = Environment(env=self._settings.to_env_dict())
            self._infrastructure_factory = InfrastructureFactory.construct(env)
            self._recorder = self._infrastructure_factory.application_recorder()
            logger.info(
                "event_store: recorder ready (%s)", self._settings.persistence_module
            )
        return self._recorder

    def close(self) -> None:
        """Close connection pools and release resources."""
        if self._infrastructure_factory is not None:
            self._infrastructure_factory.close()
            self._infrastructure_factory = None
            self._recorder = None


@lru_cache(maxsize=1)
def get_event_store_factory() -> EventStoreFactory:
    """Get the cached EventStoreFactory singleton."""
    return EventStoreFactory.from_env()
