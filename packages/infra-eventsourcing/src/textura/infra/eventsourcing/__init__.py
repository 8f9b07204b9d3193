"""Textura Infra Eventsourcing -- append-only event trail over an eventsourcing recorder."""

from textura.infra.eventsourcing.event_store import (
    EVENT_STREAM_NAMESPACE,
    EventStore,
    EventStoreError,
    EventStoreFactory,
    get_event_store_factory,
    stream_id,
)
from textura.infra.eventsourcing.lifespan import lifespan_contribution
from textura.infra.eventsourcing.settings import EventSourcingSettings

__all__ = [
    "EVENT_STREAM_NAMESPACE",
    "EventSourcingSettings",
    "EventStore",
    "EventStoreError",
    "EventStoreFactory",
    "get_event_store_factory",
    "lifespan_contribution",
    "stream_id",
]
