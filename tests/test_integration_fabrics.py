"""End-to-end tests of the assembled fabrics app.

Both ingress paths run against the same stores: REST requests through the
HTTP stack, and ERP messages through the router the lifespan registered.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from textura.infra.eventsourcing.event_store import EventStore
from textura.infra.messaging.envelope import EventEnvelope
from textura.infra.messaging.publisher import InMemoryPublisher
from textura.infra.messaging.router import InboundMessage

if TYPE_CHECKING:
    from fastapi.testclient import TestClient


def _erp_message(event_type: str, payload: dict[str, Any], *, version: int = 0) -> InboundMessage:
    envelope = EventEnvelope.create(
        event_type=event_type,
        aggregate_id=str(payload.get("fabric_code", "")),
        aggregate_type="fabric",
        aggregate_version=version,
        payload=payload,
    )
    return InboundMessage(subject="ERP.Fabric", data=envelope.to_json(), message_id="1-0")


def _deliver(client: TestClient, message: InboundMessage) -> None:
    router = client.app.state.message_router  # type: ignore[attr-defined]
    client.portal.call(router.route, message)  # type: ignore[union-attr]


@pytest.mark.integration
class TestStartup:
    def test_state_wired(self, client: TestClient) -> None:
        state = client.app.state  # type: ignore[attr-defined]
        assert isinstance(state.publisher, InMemoryPublisher)
        assert isinstance(state.event_store, EventStore)
        assert state.message_router.subjects == ["erp.fabric"]
        assert not hasattr(state, "subscriber")

    def test_healthz(self, client: TestClient) -> None:
        resp = client.get("/healthz")
        assert resp.status_code == 200
        assert resp.json()["checks"] == {
            "database": {"status": "ok"},
            "redis": {"status": "skipped"},
        }

    def test_openapi_lists_fabric_routes(self, client: TestClient) -> None:
        paths = client.get("/openapi.json").json()["paths"]
        assert "/v1/fabrics" in paths
        assert "/v1/fabrics/{code}/events" in paths


@pytest.mark.integration
class TestRestLifecycle:
    def test_create_update_delete_recreate(self, client: TestClient) -> None:
        headers = {"X-Correlation-ID": "it-1", "X-User-ID": "u-7"}

        resp = client.post(
            "/v1/fabrics",
            json={"code": "FAB1", "name": "Linen", "measure_unit": "MB", "offer_status": "ACTIVE"},
            headers=headers,
        )
        assert resp.status_code == 202
        assert resp.headers["X-Correlation-ID"] == "it-1"

        resp = client.put(
            "/v1/fabrics/FAB1",
            json={"name": "Linen Blend", "measure_unit": "MB", "offer_status": "ACTIVE", "version": 1},
        )
        assert resp.status_code == 200
        assert resp.json()["fabric"]["version"] == 2

        resp = client.request("DELETE", "/v1/fabrics/FAB1", json={"version": 2})
        assert resp.status_code == 204
        assert client.get("/v1/fabrics/FAB1").status_code == 404

        resp = client.post("/v1/fabrics", json={"code": "FAB1", "name": "Linen Again"})
        assert resp.status_code == 202

        fabric = client.get("/v1/fabrics/FAB1").json()["fabric"]
        assert fabric["version"] == 4
        assert fabric["status"] == "ACTIVE"
        assert fabric["name"] == "Linen Again"

        events = client.get("/v1/fabrics/FAB1/events").json()["events"]
        assert [(e["event_type"], e["aggregate_version"]) for e in events] == [
            ("app.fabric.created", 1),
            ("app.fabric.updated", 2),
            ("app.fabric.deleted", 3),
            ("app.fabric.reactivated", 4),
        ]
        assert events[0]["correlation_id"] == "it-1"
        assert events[0]["user_id"] == "u-7"

        publisher = client.app.state.publisher  # type: ignore[attr-defined]
        assert [subject for subject, _ in publisher.published] == ["app.fabric"] * 4

    def test_stale_version_conflicts(self, client: TestClient) -> None:
        client.post("/v1/fabrics", json={"code": "FAB2", "name": "Silk"})
        body = {"name": "Silk 2", "version": 1}
        assert client.put("/v1/fabrics/FAB2", json=body).status_code == 200

        resp = client.put("/v1/fabrics/FAB2", json=body)
        assert resp.status_code == 409
        assert resp.json()["error_code"] == "CONCURRENCY_CONFLICT"

    def test_duplicate_code_conflicts(self, client: TestClient) -> None:
        client.post("/v1/fabrics", json={"code": "FAB3", "name": "Wool"})
        resp = client.post("/v1/fabrics", json={"code": "FAB3", "name": "Wool"})
        assert resp.status_code == 409
        assert resp.json()["error_code"] == "DUPLICATE_RESOURCE"

    def test_invalid_code_rejected(self, client: TestClient) -> None:
        resp = client.post("/v1/fabrics", json={"code": "fab-1", "name": "Wool"})
        assert resp.status_code == 422
        assert resp.json()["context"]["field"] == "code"


@pytest.mark.integration
class TestErpFeed:
    def test_erp_lifecycle_is_not_republished(self, client: TestClient) -> None:
        _deliver(
            client,
            _erp_message("erp.fabric.created", {"fabric_code": "ERP1", "fabric_name": "Denim"}),
        )
        fabric = client.get("/v1/fabrics/ERP1").json()["fabric"]
        assert fabric["version"] == 1
        assert fabric["measure_unit"] == "MB"
        assert fabric["offer_status"] == "ACTIVE"

        _deliver(
            client,
            _erp_message(
                "erp.fabric.updated",
                {"fabric_code": "ERP1", "fabric_name": "Raw Denim", "version": 2},
            ),
        )
        assert client.get("/v1/fabrics/ERP1").json()["fabric"]["name"] == "Raw Denim"

        _deliver(
            client,
            _erp_message("erp.fabric.deleted", {"fabric_code": "ERP1"}, version=3),
        )
        assert client.get("/v1/fabrics/ERP1").status_code == 404

        events = client.get("/v1/fabrics/ERP1/events").json()["events"]
        assert [e["aggregate_version"] for e in events] == [1, 2, 3]
        assert client.app.state.publisher.published == []  # type: ignore[attr-defined]

    def test_redelivery_is_idempotent(self, client: TestClient) -> None:
        created = _erp_message("erp.fabric.created", {"fabric_code": "ERP2", "fabric_name": "Tweed"})
        _deliver(client, created)
        _deliver(client, created)

        events = client.get("/v1/fabrics/ERP2/events").json()["events"]
        assert len(events) == 1

    def test_bad_message_is_dropped(self, client: TestClient) -> None:
        _deliver(client, InboundMessage(subject="erp.fabric", data=b"not json"))
        _deliver(
            client,
            _erp_message("erp.fabric.created", {"fabric_code": "x", "fabric_name": "Bad"}),
        )
        assert client.get("/v1/fabrics/X").status_code == 404
