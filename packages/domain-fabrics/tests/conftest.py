"""Shared fixtures for domain-fabrics tests.

State lives in in-memory SQLite, the event trail in a POPO recorder, and
outward publishing in an in-memory publisher.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from eventsourcing.popo import POPOApplicationRecorder

from textura.domain.fabrics.fabric import Fabric
from textura.domain.fabrics.fabric_service import FabricCommandService
from textura.domain.fabrics.infrastructure.fabric_repository import SqlFabricRepository
from textura.domain.fabrics.settings import FabricSettings
from textura.infra.eventsourcing.event_store import EventStore
from textura.infra.messaging.publisher import InMemoryPublisher
from textura.infra.persistence.database import DatabaseManager, DatabaseSettings


@pytest.fixture()
def database_manager() -> Iterator[DatabaseManager]:
    manager = DatabaseManager(DatabaseSettings(url="sqlite+pysqlite:///:memory:", _env_file=None))
    yield manager
    manager.dispose()


@pytest.fixture()
def repository(database_manager: DatabaseManager) -> SqlFabricRepository:
    repo = SqlFabricRepository(database_manager.get_session_factory())
    repo.ensure_schema()
    return repo


@pytest.fixture()
def event_store() -> EventStore:
    return EventStore(POPOApplicationRecorder())


@pytest.fixture()
def publisher() -> InMemoryPublisher:
    return InMemoryPublisher()


@pytest.fixture()
def fabric_settings() -> FabricSettings:
    return FabricSettings(_env_file=None)


@pytest.fixture()
def service(
    repository: SqlFabricRepository,
    event_store: EventStore,
    publisher: InMemoryPublisher,
    fabric_settings: FabricSettings,
) -> FabricCommandService:
    return FabricCommandService(repository, event_store, publisher, fabric_settings)


@pytest.fixture()
def new_fabric() -> Fabric:
    """An ACTIVE fabric at version 1 with its created event pending."""
    return Fabric.create("FAB1", "Cotton", "MB", "ACTIVE")
