"""Unit tests for textura.infra.messaging.envelope."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime

import pydantic
import pytest

from textura.foundation.domain.events import BaseEvent
from textura.foundation.domain.exceptions import ValidationError
from textura.infra.messaging.envelope import EnvelopeMetadata, EventEnvelope
from textura.infra.messaging.errors import InvalidEnvelopeError


@dataclass(frozen=True, kw_only=True)
class Renamed(BaseEvent):
    name: str


def _envelope(**overrides: object) -> EventEnvelope:
    fields: dict[str, object] = {
        "event_type": "app.fabric.created",
        "aggregate_id": "FAB1",
        "aggregate_type": "fabric",
        "aggregate_version": 1,
        "payload": {"code": "FAB1", "name": "Cotton"},
    }
    fields.update(overrides)
    return EventEnvelope.create(**fields)  # type: ignore[arg-type]


@pytest.mark.unit
class TestCreate:
    def test_defaults(self) -> None:
        envelope = _envelope()
        assert envelope.event_version == 1
        assert envelope.event_id
        assert envelope.timestamp.tzinfo is not None
        assert envelope.correlation_id == ""

    def test_event_ids_are_unique(self) -> None:
        assert _envelope().event_id != _envelope().event_id

    def test_metadata_applied(self) -> None:
        envelope = _envelope(
            metadata=EnvelopeMetadata(correlation_id="c1", causation_id="e0", user_id="u1")
        )
        assert (envelope.correlation_id, envelope.causation_id, envelope.user_id) == (
            "c1",
            "e0",
            "u1",
        )

    def test_frozen(self) -> None:
        envelope = _envelope()
        with pytest.raises(pydantic.ValidationError):
            envelope.aggregate_version = 2  # type: ignore[misc]

    def test_from_domain_event(self) -> None:
        ts = datetime(2024, 5, 1, 10, 0, tzinfo=UTC)
        event = Renamed(originator_id="FAB1", originator_version=3, timestamp=ts, name="Silk")
        envelope = EventEnvelope.from_domain_event(
            event, event_type="app.fabric.updated", aggregate_type="fabric"
        )
        assert envelope.aggregate_id == "FAB1"
        assert envelope.aggregate_version == 3
        assert envelope.timestamp == ts
        assert envelope.payload == {"name": "Silk"}


@pytest.mark.unit
class TestEnsureValid:
    def test_valid_envelope_passes(self) -> None:
        _envelope().ensure_valid()

    @pytest.mark.parametrize(
        ("field", "message"),
        [
            ("event_type", "event type is required"),
            ("aggregate_id", "aggregate ID is required"),
            ("aggregate_type", "aggregate type is required"),
            ("payload", "payload is required"),
        ],
    )
    def test_missing_field_named(self, field: str, message: str) -> None:
        value: object = {} if field == "payload" else ""
        envelope = _envelope().model_copy(update={field: value})
        with pytest.raises(InvalidEnvelopeError) as exc_info:
            envelope.ensure_valid()
        assert exc_info.value.field == field
        assert exc_info.value.reason == message

    def test_reports_first_missing_field(self) -> None:
        envelope = EventEnvelope()
        with pytest.raises(InvalidEnvelopeError) as exc_info:
            envelope.ensure_valid()
        assert exc_info.value.reason == "event type is required"

    def test_is_validation_error(self) -> None:
        assert issubclass(InvalidEnvelopeError, ValidationError)


@pytest.mark.unit
class TestWireFormat:
    def test_to_json_omits_empty_optional_fields(self) -> None:
        wire = json.loads(_envelope(metadata=EnvelopeMetadata(user_id="u1")).to_json())
        assert wire["user_id"] == "u1"
        assert "correlation_id" not in wire
        assert "causation_id" not in wire
        assert set(wire) >= {
            "event_id",
            "event_type",
            "aggregate_id",
            "aggregate_type",
            "aggregate_version",
            "event_version",
            "timestamp",
            "payload",
        }

    def test_from_json_decodes_external_envelope(self) -> None:
        raw = json.dumps(
            {
                "event_id": "ext-1",
                "event_type": "erp.fabric.created",
                "aggregate_id": "FAB1",
                "aggregate_type": "fabric",
                "aggregate_version": 1,
                "timestamp": "2024-05-01T10:00:00Z",
                "payload": {"fabric_code": "FAB1", "fabric_name": "Cotton"},
                "unknown_field": True,
            }
        )
        envelope = EventEnvelope.from_json(raw)
        assert envelope.event_id == "ext-1"
        assert envelope.payload == {"fabric_code": "FAB1", "fabric_name": "Cotton"}
        assert envelope.event_version == 1

    def test_from_json_rejects_garbage(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            EventEnvelope.from_json(b"not json")

    def test_from_json_rejects_non_object_payload(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            EventEnvelope.from_json('{"event_type": "x", "payload": [1, 2]}')
