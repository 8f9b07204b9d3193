"""Aggregated health check endpoint.

Reports per-subsystem health for the database and the message bus.
Subsystems the app did not start are reported as ``skipped``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from textura.infra.messaging.publisher import RedisStreamPublisher
from textura.infra.persistence.redis_client import get_redis_factory

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


def _select_one(manager: Any) -> None:
    with manager.get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))


async def _check_database(request: Request) -> dict[str, str]:
    """Check database connectivity via SELECT 1."""
    manager = getattr(request.app.state, "database_manager", None)
    if manager is None:
        return {"status": "skipped"}
    try:
        await asyncio.to_thread(_select_one, manager)
        return {"status": "ok"}
    except SQLAlchemyError as exc:
        logger.warning("health_check: database unhealthy: %s", exc)
        return {"status": "error", "detail": type(exc).__name__}


async def _check_redis(request: Request) -> dict[str, str]:
    """Check Redis connectivity via PING when the stream publisher is in use."""
    publisher = getattr(request.app.state, "publisher", None)
    if not isinstance(publisher, RedisStreamPublisher):
        return {"status": "skipped"}
    try:
        client = await get_redis_factory().get_client()
        await client.ping()
        return {"status": "ok"}
    except RedisError as exc:
        logger.warning("health_check: redis unhealthy: %s", exc)
        return {"status": "error", "detail": type(exc).__name__}


@router.get("/healthz")
async def healthz(request: Request) -> Any:
    """Aggregated health check endpoint.

    Returns HTTP 200 when every started subsystem is healthy, HTTP 503 when
    any is degraded.
    """
    checks: dict[str, dict[str, str]] = {
        "database": await _check_database(request),
        "redis": await _check_redis(request),
    }

    all_ok = all(c["status"] != "error" for c in checks.values())
    result = {
        "status": "ok" if all_ok else "degraded",
        "checks": checks,
    }
    return JSONResponse(content=result, status_code=200 if all_ok else 503)
