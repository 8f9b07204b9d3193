"""Tests for BaseEvent."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

import pytest

from textura.foundation.domain.events import BaseEvent


class Colour(StrEnum):
    RED = "RED"


@dataclass(frozen=True, kw_only=True)
class SampleEvent(BaseEvent):
    name: str
    colour: Colour = Colour.RED


@pytest.mark.unit
class TestBaseEvent:
    def test_timestamp_defaults_to_utc_now(self) -> None:
        event = SampleEvent(originator_id="FAB1", originator_version=1, name="Cotton")
        assert event.timestamp.tzinfo is UTC

    def test_is_frozen(self) -> None:
        event = SampleEvent(originator_id="FAB1", originator_version=1, name="Cotton")
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.name = "Silk"  # type: ignore[misc]

    def test_rejects_empty_originator(self) -> None:
        with pytest.raises(ValueError, match="originator_id"):
            SampleEvent(originator_id="", originator_version=1, name="Cotton")

    def test_rejects_version_below_one(self) -> None:
        with pytest.raises(ValueError, match="originator_version"):
            SampleEvent(originator_id="FAB1", originator_version=0, name="Cotton")

    def test_payload_excludes_metadata(self) -> None:
        event = SampleEvent(
            originator_id="FAB1",
            originator_version=2,
            timestamp=datetime(2024, 1, 1, tzinfo=UTC),
            name="Cotton",
        )
        assert event.to_payload() == {"name": "Cotton", "colour": "RED"}
