"""Textura Infra Messaging -- event envelopes, routing and Redis Streams transport."""

from textura.infra.messaging.envelope import EnvelopeMetadata, EventEnvelope
from textura.infra.messaging.errors import InvalidEnvelopeError, PublishError
from textura.infra.messaging.lifespan import (
    bus_lifespan_contribution,
    consumers_lifespan_contribution,
)
from textura.infra.messaging.publisher import (
    EnvelopePublisher,
    InMemoryPublisher,
    RedisStreamPublisher,
)
from textura.infra.messaging.router import InboundMessage, MessageHandler, MessageRouter
from textura.infra.messaging.settings import MessagingSettings, get_messaging_settings
from textura.infra.messaging.subscriber import RedisStreamSubscriber

__all__ = [
    "EnvelopeMetadata",
    "EnvelopePublisher",
    "EventEnvelope",
    "InMemoryPublisher",
    "InboundMessage",
    "InvalidEnvelopeError",
    "MessageHandler",
    "MessageRouter",
    "MessagingSettings",
    "PublishError",
    "RedisStreamPublisher",
    "RedisStreamSubscriber",
    "bus_lifespan_contribution",
    "consumers_lifespan_contribution",
    "get_messaging_settings",
]
