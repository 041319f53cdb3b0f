"""Health check routes."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from redis.exceptions import RedisError

from routes._deps import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict:
    """Liveness plus the configured backends."""
    cfg = settings(request)
    return {
        "status": "ok",
        "jobStore": cfg.job_store_backend,
        "mediaStorage": cfg.media_storage_backend,
    }


@router.get("/health/ready")
async def ready(request: Request) -> dict:
    try:
        await request.app.state.redis.ping()
    except RedisError as exc:
        raise HTTPException(status_code=503, detail=f"redis unavailable: {exc}") from exc
    return {"status": "ready"}
