from __future__ import annotations

import sys
from pathlib import Path

import pytest

from transcriptflow.models.job import Job, RecognitionMetadata
from transcriptflow.storage.memory_store import MemoryJobStore

_WORKER_ROOT = Path(__file__).resolve().parents[1]
if str(_WORKER_ROOT) not in sys.path:
    sys.path.insert(0, str(_WORKER_ROOT))


@pytest.fixture()
def store() -> MemoryJobStore:
    return MemoryJobStore()


@pytest.fixture()
def job() -> Job:
    return Job(
        id="job-1",
        user_id="user-1",
        metadata=RecognitionMetadata(language_codes=["en-US"], original_mime_type="audio/wav"),
    )
