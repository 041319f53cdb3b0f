from __future__ import annotations

import json
import sys
from collections import defaultdict
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from transcriptflow.config import Settings
from transcriptflow.services.storage import LocalStorageService, get_media_storage
from transcriptflow.storage.memory_store import MemoryJobStore

_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))


class FakeRedis:
    def __init__(self) -> None:
        self._lists: dict[str, list[str]] = defaultdict(list)
        self.healthy = True

    async def lpush(self, key: str, *values: str) -> int:
        if not self.healthy:
            raise RedisConnectionError("connection refused")
        lst = self._lists[str(key)]
        for v in values:
            lst.insert(0, str(v))
        return len(lst)

    async def ping(self) -> bool:
        if not self.healthy:
            raise RedisConnectionError("connection refused")
        return True

    async def aclose(self) -> None:
        return None

    def dump_queue(self, key: str) -> list[dict[str, Any]]:
        return [json.loads(x) for x in list(self._lists.get(str(key), []))]


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        job_store_backend="memory",
        media_storage_backend="local",
        upload_max_bytes=1024,
        data_dir=str(tmp_path / "data"),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture()
def redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def job_store() -> MemoryJobStore:
    return MemoryJobStore()


@pytest.fixture()
def media_storage(settings: Settings) -> LocalStorageService:
    storage = get_media_storage(settings)
    assert isinstance(storage, LocalStorageService)
    return storage


@pytest.fixture()
def app(
    settings: Settings,
    redis: FakeRedis,
    job_store: MemoryJobStore,
    media_storage: LocalStorageService,
) -> FastAPI:
    from routes.health import router as health_router
    from routes.jobs import router as jobs_router
    from routes.statistics import router as statistics_router
    from routes.uploads import router as uploads_router

    test_app = FastAPI()
    test_app.state.redis = redis
    test_app.state.settings = settings
    test_app.state.job_store = job_store
    test_app.state.media_storage = media_storage
    test_app.include_router(jobs_router)
    test_app.include_router(statistics_router)
    test_app.include_router(uploads_router)
    test_app.include_router(health_router)
    return test_app


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
