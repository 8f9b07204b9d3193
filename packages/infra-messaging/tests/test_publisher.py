"""Unit tests for textura.infra.messaging.publisher."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from textura.infra.messaging.envelope import EventEnvelope
from textura.infra.messaging.errors import PublishError
from textura.infra.messaging.publisher import (
    EnvelopePublisher,
    InMemoryPublisher,
    RedisStreamPublisher,
)


def _envelope() -> EventEnvelope:
    return EventEnvelope.create(
        event_type="app.fabric.created",
        aggregate_id="FAB1",
        aggregate_type="fabric",
        aggregate_version=1,
        payload={"code": "FAB1"},
    )


@pytest.mark.unit
class TestRedisStreamPublisher:
    @pytest.mark.asyncio
    async def test_xadd_with_data_field(self) -> None:
        redis = AsyncMock()
        redis.xadd.return_value = "1-0"
        envelope = _envelope()

        await RedisStreamPublisher(redis, max_stream_length=1000).publish("app.fabric", envelope)

        args, kwargs = redis.xadd.call_args
        assert args[0] == "app.fabric"
        assert json.loads(args[1]["data"])["event_id"] == envelope.event_id
        assert kwargs == {"maxlen": 1000, "approximate": True}

    @pytest.mark.asyncio
    async def test_untrimmed_stream(self) -> None:
        redis = AsyncMock()
        await RedisStreamPublisher(redis).publish("app.fabric", _envelope())
        assert redis.xadd.call_args.kwargs == {"maxlen": None, "approximate": False}

    @pytest.mark.asyncio
    async def test_redis_failure_raises_publish_error(self) -> None:
        redis = AsyncMock()
        redis.xadd.side_effect = RedisConnectionError("refused")
        envelope = _envelope()

        with pytest.raises(PublishError) as exc_info:
            await RedisStreamPublisher(redis).publish("app.fabric", envelope)

        assert exc_info.value.subject == "app.fabric"
        assert exc_info.value.event_id == envelope.event_id


@pytest.mark.unit
class TestInMemoryPublisher:
    @pytest.mark.asyncio
    async def test_records_envelopes(self) -> None:
        publisher = InMemoryPublisher()
        envelope = _envelope()
        await publisher.publish("app.fabric", envelope)
        assert publisher.published == [("app.fabric", envelope)]

    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryPublisher(), EnvelopePublisher)
        assert isinstance(RedisStreamPublisher(AsyncMock()), EnvelopePublisher)
