"""Fabric REST API router.

Every mutation runs through the same command service as the inbound event
feed. The REST invocation context carries the request's correlation ID and
``X-User-ID`` and is bounded by ``FABRIC_COMMAND_TIMEOUT_SECONDS``; REST
commands are also published outward.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - FastAPI needs it at runtime for the response model
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, Response
from pydantic import BaseModel, Field

from textura.domain.fabrics.fabric import Fabric  # noqa: TC001
from textura.domain.fabrics.fabric_service import FabricCommandService
from textura.domain.fabrics.settings import FabricSettings, get_fabric_settings  # noqa: TC001
from textura.foundation.application.context import InvocationContext
from textura.infra.fastapi.middleware.correlation_id import get_correlation_id

router = APIRouter(prefix="/v1/fabrics", tags=["fabrics"])


# -- Request / Response models ------------------------------------------------


class CreateFabricRequest(BaseModel):
    code: str
    name: str
    measure_unit: str = ""
    offer_status: str = ""


class UpdateFabricRequest(BaseModel):
    name: str
    measure_unit: str = ""
    offer_status: str = ""
    version: int = Field(ge=1)


class DeleteFabricRequest(BaseModel):
    version: int = Field(ge=1)


class FabricResponse(BaseModel):
    code: str
    name: str
    measure_unit: str
    offer_status: str
    status: str
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class FabricEnvelope(BaseModel):
    fabric: FabricResponse


class FabricEventResponse(BaseModel):
    event_id: str
    event_type: str
    aggregate_version: int
    timestamp: datetime
    correlation_id: str = ""
    causation_id: str = ""
    user_id: str = ""
    payload: dict[str, object] | None = None


class FabricEventsEnvelope(BaseModel):
    events: list[FabricEventResponse]


# -- Dependencies -------------------------------------------------------------


def get_fabric_service(request: Request) -> FabricCommandService:
    """Command service installed on ``app.state`` by the fabrics lifespan hook."""
    service: FabricCommandService = request.app.state.fabric_service
    return service


def rest_context(
    settings: Annotated[FabricSettings, Depends(get_fabric_settings)],
    x_user_id: Annotated[str, Header()] = "",
) -> InvocationContext:
    """REST invocation bounded by ``FABRIC_COMMAND_TIMEOUT_SECONDS``."""
    return InvocationContext.rest(
        correlation_id=get_correlation_id(), user_id=x_user_id
    ).with_timeout(settings.command_timeout_seconds)


ServiceDep = Annotated[FabricCommandService, Depends(get_fabric_service)]
ContextDep = Annotated[InvocationContext, Depends(rest_context)]


# -- Endpoints ----------------------------------------------------------------


@router.post("", status_code=202)
async def create_fabric(
    body: CreateFabricRequest, service: ServiceDep, ctx: ContextDep
) -> FabricEnvelope:
    """Create a fabric, or recreate a deleted one."""
    fabric = await service.create_fabric(
        ctx,
        code=body.code,
        name=body.name,
        measure_unit=body.measure_unit,
        offer_status=body.offer_status,
    )
    return _envelope(fabric)


@router.get("/{code}")
async def get_fabric(code: str, service: ServiceDep) -> FabricEnvelope:
    """Retrieve an ACTIVE fabric by code."""
    return _envelope(await service.get_fabric(code))


@router.put("/{code}")
async def update_fabric(
    code: str, body: UpdateFabricRequest, service: ServiceDep, ctx: ContextDep
) -> FabricEnvelope:
    """Update an ACTIVE fabric. ``version`` is the version the caller last saw."""
    fabric = await service.update_fabric(
        ctx,
        code=code,
        name=body.name,
        measure_unit=body.measure_unit,
        offer_status=body.offer_status,
        expected_version=body.version,
    )
    return _envelope(fabric)


@router.delete("/{code}", status_code=204)
async def delete_fabric(
    code: str, body: DeleteFabricRequest, service: ServiceDep, ctx: ContextDep
) -> Response:
    """Mark a fabric DELETED."""
    await service.delete_fabric(ctx, code=code, expected_version=body.version)
    return Response(status_code=204)


@router.get("/{code}/events")
async def list_fabric_events(code: str, service: ServiceDep) -> FabricEventsEnvelope:
    """Recorded event trail for a fabric, oldest first (deleted fabrics included)."""
    history = await service.get_history(code)
    return FabricEventsEnvelope(
        events=[
            FabricEventResponse(
                event_id=e.event_id,
                event_type=e.event_type,
                aggregate_version=e.aggregate_version,
                timestamp=e.timestamp,
                correlation_id=e.correlation_id,
                causation_id=e.causation_id,
                user_id=e.user_id,
                payload=e.payload,
            )
            for e in history
        ]
    )


# -- Helpers ------------------------------------------------------------------


def _envelope(fabric: Fabric) -> FabricEnvelope:
    return FabricEnvelope(
        fabric=FabricResponse(
            code=fabric.code,
            name=fabric.name,
            measure_unit=fabric.measure_unit,
            offer_status=fabric.offer_status,
            status=fabric.status.value,
            version=fabric.version,
            created_at=fabric.created_at,
            updated_at=fabric.updated_at,
        )
    )
