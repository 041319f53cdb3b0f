"""PostgreSQL-backed job store."""

from __future__ import annotations

import logging

from psycopg_pool import AsyncConnectionPool

from transcriptflow.exceptions import JobNotFoundError, StageTransitionError
from transcriptflow.models.error import ErrorRecord
from transcriptflow.models.job import (
    ALLOWED_PREDECESSORS,
    COMPLETION_TIMESTAMPS,
    NON_TERMINAL_STAGES,
    PERCENT_STAGES,
    Job,
    JobStage,
    percent_on_enter,
)
from transcriptflow.models.statistics import TranscriptSummary, UsageStatistics
from transcriptflow.models.transcript import ResultFragment
from transcriptflow.repositories import (
    DatabasePool,
    JobRepository,
    ResultFragmentRepository,
    UsageStatisticsRepository,
)
from transcriptflow.storage.job_store import JobStore

logger = logging.getLogger(__name__)


class PostgresJobStore(JobStore):
    """Stage writes are conditional UPDATEs on the current stage.

    A row that does not match is either a missing job or an illegal
    transition; the store re-reads the stage to tell them apart.
    """

    def __init__(self, pool: AsyncConnectionPool, *, statistics_key: str = "transcripts") -> None:
        self.pool = pool
        self.job_repo = JobRepository(pool)
        self.result_repo = ResultFragmentRepository(pool)
        self.statistics_repo = UsageStatisticsRepository(pool, key=statistics_key)

    async def _require_stage(self, job_id: str) -> JobStage:
        stage = await self.job_repo.get_stage(job_id)
        if stage is None:
            raise JobNotFoundError(job_id)
        return stage

    async def create_job(self, job: Job) -> Job:
        return await self.job_repo.create(job)

    async def get_job(self, job_id: str) -> Job | None:
        return await self.job_repo.get(job_id)

    async def get_stage(self, job_id: str) -> JobStage:
        return await self._require_stage(job_id)

    async def set_stage(self, job_id: str, stage: JobStage) -> None:
        ok = await self.job_repo.update_stage(
            job_id,
            stage,
            allowed_from=ALLOWED_PREDECESSORS[stage],
            percent=percent_on_enter(stage),
            timestamp_key=COMPLETION_TIMESTAMPS.get(stage),
        )
        if not ok:
            current = await self._require_stage(job_id)
            raise StageTransitionError(job_id, current.value, stage.value)

    async def set_percent(self, job_id: str, percent: int) -> None:
        clamped = max(0, min(100, int(percent)))
        ok = await self.job_repo.update_percent(job_id, clamped, stages=PERCENT_STAGES)
        if not ok:
            current = await self._require_stage(job_id)
            logger.debug(
                "percent ignored outside progress stages (job_id=%s, stage=%s)",
                job_id,
                current.value,
            )

    async def set_duration(self, job_id: str, seconds: float) -> None:
        if not await self.job_repo.update_duration(job_id, seconds):
            raise JobNotFoundError(job_id)

    async def set_playback_url(self, job_id: str, url: str) -> None:
        if not await self.job_repo.update_playback_url(job_id, url):
            raise JobNotFoundError(job_id)

    async def record_error(self, job_id: str, error: ErrorRecord) -> None:
        ok = await self.job_repo.mark_failed(
            job_id,
            error,
            allowed_from=NON_TERMINAL_STAGES,
            timestamp_key=COMPLETION_TIMESTAMPS[JobStage.FAILED],
        )
        if not ok:
            current = await self._require_stage(job_id)
            logger.warning(
                "error not recorded on terminal job (job_id=%s, stage=%s)",
                job_id,
                current.value,
            )

    async def append_result_fragment(self, job_id: str, fragment: ResultFragment) -> str:
        return await self.result_repo.insert(job_id, fragment)

    async def list_result_fragments(self, job_id: str) -> list[ResultFragment]:
        await self._require_stage(job_id)
        return await self.result_repo.list_by_job(job_id)

    async def record_summary(self, summary: TranscriptSummary) -> UsageStatistics:
        return await self.statistics_repo.record(summary)

    async def get_usage_statistics(self) -> UsageStatistics:
        return await self.statistics_repo.get()

    async def list_summaries(self, limit: int = 100) -> list[TranscriptSummary]:
        return await self.statistics_repo.list_summaries(limit=limit)

    async def close(self) -> None:
        await DatabasePool.close()
