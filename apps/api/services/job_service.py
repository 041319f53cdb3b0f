"""Job creation and read paths."""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from transcriptflow.models.error import ErrorRecord
from transcriptflow.models.job import Job, JobStage, RecognitionMetadata
from transcriptflow.models.statistics import TranscriptSummary, UsageStatistics
from transcriptflow.models.transcript import ResultFragment
from transcriptflow.services.events import JOBS_CREATED_QUEUE, job_created_event
from transcriptflow.storage.job_store import JobStore

logger = logging.getLogger("transcriptflow.api.jobs")


class JobService:
    def __init__(self, store: JobStore, redis: Redis):
        self.store = store
        self.redis = redis

    async def create_job(
        self,
        *,
        job_id: str,
        user_id: str,
        metadata: RecognitionMetadata,
    ) -> Job:
        """Create the job record, then emit its creation event.

        If the event cannot be queued the job is marked failed, so it is
        never left waiting at Uploading, and the Redis error is re-raised.
        """
        job = Job(
            id=str(job_id),
            user_id=user_id,
            stage=JobStage.UPLOADING,
            metadata=metadata,
        )
        job = await self.store.create_job(job)
        try:
            await self.redis.lpush(JOBS_CREATED_QUEUE, job_created_event(job))
        except RedisError as exc:
            logger.error("job event enqueue failed (job_id=%s, error=%s)", job.id, exc)
            await self.store.record_error(job.id, ErrorRecord.from_exception(exc))
            raise
        logger.info("job created (job_id=%s, user_id=%s)", job.id, user_id)
        return job

    async def get_job(self, job_id: str) -> Job | None:
        return await self.store.get_job(job_id)

    async def list_results(self, job_id: str) -> list[ResultFragment]:
        return await self.store.list_result_fragments(job_id)

    async def get_statistics(self, *, limit: int = 20) -> tuple[UsageStatistics, list[TranscriptSummary]]:
        stats = await self.store.get_usage_statistics()
        summaries = await self.store.list_summaries(limit=limit)
        return stats, summaries
