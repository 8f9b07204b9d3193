"""Textura Domain Fabrics -- fabric aggregate, command pipeline and adapters."""

from textura.domain.fabrics.errors import (
    DuplicateFabricCodeError,
    FabricAlreadyDeletedError,
    FabricNotFoundError,
)
from textura.domain.fabrics.fabric import (
    Fabric,
    FabricCreated,
    FabricDeleted,
    FabricEvent,
    FabricReactivated,
    FabricUpdated,
)
from textura.domain.fabrics.fabric_service import (
    FabricCommandService,
    StateEventDivergenceError,
    event_type_for,
)
from textura.domain.fabrics.inbound import ErpEventType, FabricEventHandler
from textura.domain.fabrics.ports import FabricRepository
from textura.domain.fabrics.settings import FabricSettings, get_fabric_settings
from textura.domain.fabrics.value_objects import FabricCode, FabricName, FabricStatus

__all__ = [
    "DuplicateFabricCodeError",
    "ErpEventType",
    "Fabric",
    "FabricAlreadyDeletedError",
    "FabricCode",
    "FabricCommandService",
    "FabricCreated",
    "FabricDeleted",
    "FabricEvent",
    "FabricEventHandler",
    "FabricName",
    "FabricNotFoundError",
    "FabricReactivated",
    "FabricRepository",
    "FabricSettings",
    "FabricStatus",
    "FabricUpdated",
    "StateEventDivergenceError",
    "event_type_for",
    "get_fabric_settings",
]
