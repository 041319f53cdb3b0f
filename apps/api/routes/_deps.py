from __future__ import annotations

from fastapi import HTTPException, Request
from redis.asyncio import Redis

from services.job_service import JobService
from transcriptflow.config import Settings
from transcriptflow.services.storage import MediaStorage
from transcriptflow.storage.job_store import JobStore


def settings(request: Request) -> Settings:
    value: Settings | None = getattr(request.app.state, "settings", None)
    if value is None:
        raise HTTPException(status_code=500, detail="settings not initialized")
    return value


def media_storage(request: Request) -> MediaStorage:
    storage: MediaStorage | None = getattr(request.app.state, "media_storage", None)
    if storage is None:
        raise HTTPException(status_code=500, detail="media storage not initialized")
    return storage


def job_service(request: Request) -> JobService:
    store: JobStore | None = getattr(request.app.state, "job_store", None)
    if store is None:
        raise HTTPException(status_code=500, detail="job store not initialized")
    redis: Redis = request.app.state.redis
    return JobService(store=store, redis=redis)
