"""Shared fixtures for integration tests.

The full fabrics app runs against in-memory SQLite for current state, the
in-memory eventsourcing recorder for the event trail and the in-memory
publisher (bus disabled), so no external services are needed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from fastapi.testclient import TestClient

from textura.domain.fabrics.app import create_fabrics_app
from textura.domain.fabrics.settings import get_fabric_settings
from textura.infra.eventsourcing.event_store import get_event_store_factory
from textura.infra.fastapi import AppSettings
from textura.infra.messaging.settings import get_messaging_settings
from textura.infra.observability.logging import get_logging_settings
from textura.infra.persistence.database import get_database_manager
from textura.infra.persistence.redis_client import get_redis_factory

if TYPE_CHECKING:
    from collections.abc import Iterator

    from fastapi import FastAPI

_CACHED_FACTORIES = (
    get_database_manager,
    get_event_store_factory,
    get_fabric_settings,
    get_logging_settings,
    get_messaging_settings,
    get_redis_factory,
)


def _clear_caches() -> None:
    for factory in _CACHED_FACTORIES:
        factory.cache_clear()


@pytest.fixture(autouse=True)
def local_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Point every subsystem at in-process backends."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    monkeypatch.setenv("PERSISTENCE_MODULE", "eventsourcing.popo")
    monkeypatch.setenv("MESSAGING_ENABLED", "false")
    monkeypatch.setenv("ENVIRONMENT", "test")
    _clear_caches()
    yield
    _clear_caches()


@pytest.fixture()
def fabrics_app() -> FastAPI:
    return create_fabrics_app(AppSettings(title="Fabrics Integration"))


@pytest.fixture()
def client(fabrics_app: FastAPI) -> Iterator[TestClient]:
    """TestClient for the fabrics app (lifespan hooks executed)."""
    with TestClient(fabrics_app, raise_server_exceptions=False) as c:
        yield c
