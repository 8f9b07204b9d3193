"""Tests for the event store lifespan hook."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from textura.foundation.application import LifespanContribution
from textura.infra.eventsourcing.event_store import EventStore
from textura.infra.eventsourcing.lifespan import _event_store_lifespan, lifespan_contribution


@pytest.mark.unit
class TestLifespanContribution:
    def test_is_lifespan_contribution(self) -> None:
        assert isinstance(lifespan_contribution, LifespanContribution)
        assert lifespan_contribution.priority == 100


@pytest.mark.unit
class TestEventStoreLifespan:
    @pytest.mark.asyncio
    @patch("textura.infra.eventsourcing.lifespan.get_event_store_factory")
    async def test_sets_store_and_closes_factory(self, mock_get_factory: MagicMock) -> None:
        factory = MagicMock()
        mock_get_factory.return_value = factory
        app = SimpleNamespace(state=SimpleNamespace())

        async with _event_store_lifespan(app):
            assert isinstance(app.state.event_store, EventStore)
            assert app.state.event_store.recorder is factory.recorder
            factory.close.assert_not_called()

        factory.close.assert_called_once()
