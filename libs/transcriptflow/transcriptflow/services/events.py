"""Redis key names and payloads shared by the API and the worker."""

from __future__ import annotations

import json
from typing import Any

from transcriptflow.models.job import Job

JOBS_CREATED_QUEUE = "transcriptflow:jobs:created"
DEAD_LETTER_QUEUE = "transcriptflow:jobs:dead_letter"


def progress_channel(job_id: str) -> str:
    return f"transcriptflow:job:{job_id}:progress"


def job_created_event(job: Job) -> str:
    """Creation event carrying the job snapshot as written at creation time."""
    return json.dumps({"job_id": job.id, "snapshot": job.to_dict()}, ensure_ascii=False)


def dead_letter_event(payload: Any, exc: BaseException) -> str:
    return json.dumps(
        {"event": payload, "error": {"kind": type(exc).__name__, "message": str(exc)}},
        ensure_ascii=False,
        default=str,
    )
