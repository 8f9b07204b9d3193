"""Outward publishers for event envelopes.

Envelopes are written to a Redis stream named after the subject, as a single
``data`` field holding the envelope's JSON.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from redis.exceptions import RedisError

from textura.infra.messaging.errors import PublishError

if TYPE_CHECKING:
    from textura.infra.messaging.envelope import EventEnvelope

logger = logging.getLogger(__name__)

DATA_FIELD = "data"


@runtime_checkable
class EnvelopePublisher(Protocol):
    """Anything that can forward an envelope to a subject."""

    async def publish(self, subject: str, envelope: EventEnvelope) -> None: ...


class RedisStreamPublisher:
    """Publishes envelopes with ``XADD``.

    Args:
        redis: A ``redis.asyncio.Redis`` client.
        max_stream_length: Approximate cap applied with ``MAXLEN ~``; ``None``
            leaves streams untrimmed.
    """

    def __init__(self, redis: Any, *, max_stream_length: int | None = None) -> None:
        self._redis = redis
        self._max_len = max_stream_length

    async def publish(self, subject: str, envelope: EventEnvelope) -> None:
        """Append ``envelope`` to the ``subject`` stream.

        Raises:
            PublishError: If Redis rejects the write or is unreachable.
        """
        try:
            entry_id = await self._redis.xadd(
                subject,
                {DATA_FIELD: envelope.to_json()},
                maxlen=self._max_len,
                approximate=self._max_len is not None,
            )
        except RedisError as exc:
            raise PublishError(subject, envelope.event_id, exc) from exc
        logger.debug(
            "publisher: %s v%d published to %s as %s",
            envelope.event_type,
            envelope.aggregate_version,
            subject,
            entry_id,
        )


class InMemoryPublisher:
    """Keeps published envelopes in a list.

    Used when the message bus is disabled (local runs) and in tests.
    """

    def __init__(self) -> None:
        self.published: list[tuple[str, EventEnvelope]] = []

    async def publish(self, subject: str, envelope: EventEnvelope) -> None:
        self.published.append((subject, envelope))
