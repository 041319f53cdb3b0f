from __future__ import annotations

from collections.abc import Callable

import pytest

from transcriptflow.config import Settings
from transcriptflow.models.job import Job, RecognitionMetadata
from transcriptflow.storage.memory_store import MemoryJobStore


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        job_store_backend="memory",
        media_storage_backend="local",
        data_dir=str(tmp_path / "data"),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture()
def store() -> MemoryJobStore:
    return MemoryJobStore()


@pytest.fixture()
def make_job() -> Callable[..., Job]:
    def _make(job_id: str = "job-1", **overrides) -> Job:
        fields = {
            "id": job_id,
            "user_id": "user-1",
            "metadata": RecognitionMetadata(
                language_codes=["en-US", "nb-NO"],
                original_mime_type="audio/mpeg",
            ),
        }
        fields.update(overrides)
        return Job(**fields)

    return _make
