"""In-process job store for local runs and tests."""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from datetime import datetime, timezone

from transcriptflow.exceptions import JobNotFoundError, PersistenceError, StageTransitionError
from transcriptflow.models.error import ErrorRecord
from transcriptflow.models.job import (
    COMPLETION_TIMESTAMPS,
    PERCENT_STAGES,
    TERMINAL_STAGES,
    Job,
    JobStage,
    can_transition,
    percent_on_enter,
)
from transcriptflow.models.statistics import TranscriptSummary, UsageStatistics
from transcriptflow.models.transcript import ResultFragment
from transcriptflow.storage.job_store import JobStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class MemoryJobStore(JobStore):
    """Dict-backed store. All mutations run under one asyncio lock."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._fragments: dict[str, list[ResultFragment]] = {}
        self._statistics = UsageStatistics()
        self._summaries: dict[str, TranscriptSummary] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex

    def _require(self, job_id: str) -> Job:
        job = self._jobs.get(str(job_id))
        if job is None:
            raise JobNotFoundError(str(job_id))
        return job

    async def create_job(self, job: Job) -> Job:
        async with self._lock:
            if job.id in self._jobs:
                raise PersistenceError(f"job already exists: {job.id}")
            stored = copy.deepcopy(job)
            stored.timestamps.setdefault("createdAt", stored.created_at)
            self._jobs[job.id] = stored
            self._fragments[job.id] = []
            return copy.deepcopy(stored)

    async def get_job(self, job_id: str) -> Job | None:
        job = self._jobs.get(str(job_id))
        return copy.deepcopy(job) if job is not None else None

    async def get_stage(self, job_id: str) -> JobStage:
        return self._require(job_id).stage

    async def set_stage(self, job_id: str, stage: JobStage) -> None:
        async with self._lock:
            job = self._require(job_id)
            if not can_transition(job.stage, stage):
                raise StageTransitionError(job_id, job.stage.value, stage.value)
            now = _utcnow()
            job.stage = stage
            job.percent = percent_on_enter(stage)
            key = COMPLETION_TIMESTAMPS.get(stage)
            if key is not None:
                job.timestamps.setdefault(key, now)
            job.updated_at = now

    async def set_percent(self, job_id: str, percent: int) -> None:
        async with self._lock:
            job = self._require(job_id)
            if job.stage not in PERCENT_STAGES:
                logger.debug(
                    "percent ignored outside progress stages (job_id=%s, stage=%s)",
                    job_id,
                    job.stage.value,
                )
                return
            job.percent = max(0, min(100, int(percent)))
            job.updated_at = _utcnow()

    async def set_duration(self, job_id: str, seconds: float) -> None:
        async with self._lock:
            job = self._require(job_id)
            job.duration = float(seconds)
            job.updated_at = _utcnow()

    async def set_playback_url(self, job_id: str, url: str) -> None:
        async with self._lock:
            job = self._require(job_id)
            job.playback_url = str(url)
            job.updated_at = _utcnow()

    async def record_error(self, job_id: str, error: ErrorRecord) -> None:
        async with self._lock:
            job = self._require(job_id)
            if job.stage in TERMINAL_STAGES:
                logger.warning(
                    "error not recorded on terminal job (job_id=%s, stage=%s)",
                    job_id,
                    job.stage.value,
                )
                return
            now = _utcnow()
            job.stage = JobStage.FAILED
            job.percent = None
            job.error = copy.deepcopy(error)
            job.timestamps.setdefault(COMPLETION_TIMESTAMPS[JobStage.FAILED], now)
            job.updated_at = now

    async def append_result_fragment(self, job_id: str, fragment: ResultFragment) -> str:
        async with self._lock:
            self._require(job_id)
            stored = copy.deepcopy(fragment)
            stored.id = self._new_id()
            self._fragments.setdefault(str(job_id), []).append(stored)
            return stored.id

    async def list_result_fragments(self, job_id: str) -> list[ResultFragment]:
        self._require(job_id)
        fragments = list(self._fragments.get(str(job_id), []))
        fragments.sort(key=lambda f: (int(f.start_time_seconds), str(f.id or "")))
        return [copy.deepcopy(f) for f in fragments]

    async def record_summary(self, summary: TranscriptSummary) -> UsageStatistics:
        async with self._lock:
            # Stage both writes first, then publish them together.
            updated = self._statistics.add(summary)
            stored = copy.deepcopy(summary)
            stored.id = self._new_id()
            self._summaries[stored.id] = stored
            self._statistics = updated
            return updated

    async def get_usage_statistics(self) -> UsageStatistics:
        return self._statistics

    async def list_summaries(self, limit: int = 100) -> list[TranscriptSummary]:
        # Newest first; equal timestamps keep reverse insertion order.
        items = sorted(reversed(self._summaries.values()), key=lambda s: s.created_at, reverse=True)
        return [copy.deepcopy(s) for s in items[: max(0, int(limit))]]
