"""Health check route."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel
from redis.asyncio import Redis
from redis.exceptions import RedisError

router = APIRouter(tags=["health"])

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str  # "ok" | "degraded"
    redis: str  # "ok" | "error" | "unknown"


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    redis: Redis | None = getattr(request.app.state, "redis", None)
    if redis is None:
        return HealthResponse(status="degraded", redis="unknown")
    try:
        await redis.ping()
    except RedisError as exc:
        logger.warning("health check: redis unavailable (error=%s)", exc)
        return HealthResponse(status="degraded", redis="error")
    return HealthResponse(status="ok", redis="ok")
