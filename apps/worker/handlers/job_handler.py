"""Job-created event handling."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from transcriptflow.exceptions import PersistenceError
from transcriptflow.pipeline import PipelineOrchestrator
from transcriptflow.pipeline.context import JobUpdateHook
from transcriptflow.services.events import (
    DEAD_LETTER_QUEUE,
    JOBS_CREATED_QUEUE,
    dead_letter_event,
    progress_channel,
)
from transcriptflow.storage.job_store import JobStore

logger = logging.getLogger("transcriptflow.worker.handlers")


def make_progress_publisher(redis: Redis, store: JobStore) -> JobUpdateHook:
    """Hook that publishes the job's current progress on its pub/sub channel.

    Publishing is best effort: a Redis or store failure is logged and the job continues.
    """

    async def _publish(job_id: str) -> None:
        try:
            job = await store.get_job(job_id)
            if job is None:
                return
            await redis.publish(progress_channel(job_id), json.dumps(job.progress))
        except (RedisError, PersistenceError) as exc:
            logger.warning("progress publish failed (job_id=%s, error=%s)", job_id, exc)

    return _publish


async def _dead_letter(redis: Redis, payload: Any, exc: BaseException) -> None:
    await redis.lpush(DEAD_LETTER_QUEUE, dead_letter_event(payload, exc))


async def process_job_created(raw: str, *, orchestrator: PipelineOrchestrator, redis: Redis) -> None:
    """Run the pipeline for one creation event.

    Failures are already recorded on the job by the orchestrator; here they
    are logged and the event is parked on the dead-letter list.
    """
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("malformed job event dropped to dead letter (error=%s)", exc)
        await _dead_letter(redis, raw, exc)
        return

    job_id = str(payload.get("job_id") or "").strip() if isinstance(payload, dict) else ""
    if not job_id:
        exc = ValueError("job_id missing")
        logger.error("job event without job_id dropped to dead letter")
        await _dead_letter(redis, payload, exc)
        return

    snapshot = payload.get("snapshot")
    try:
        await orchestrator.run(job_id, snapshot=snapshot if isinstance(snapshot, dict) else None)
    except Exception as exc:
        logger.exception("job event failed (job_id=%s)", job_id)
        await _dead_letter(redis, payload, exc)


async def consume(
    redis: Redis,
    orchestrator: PipelineOrchestrator,
    *,
    concurrency: int = 4,
    poll_timeout_s: int = 5,
    stop: asyncio.Event | None = None,
) -> None:
    """Pop creation events and process up to `concurrency` jobs at once.

    Returns once `stop` is set and in-flight jobs have finished.
    """
    semaphore = asyncio.Semaphore(max(1, int(concurrency)))
    in_flight: set[asyncio.Task[None]] = set()

    async def _handle(raw: str) -> None:
        try:
            await process_job_created(raw, orchestrator=orchestrator, redis=redis)
        finally:
            semaphore.release()

    try:
        while stop is None or not stop.is_set():
            await semaphore.acquire()
            try:
                item = await redis.brpop(JOBS_CREATED_QUEUE, timeout=poll_timeout_s)
            except BaseException:
                semaphore.release()
                raise
            if not item:
                semaphore.release()
                continue
            _, raw = item
            task = asyncio.create_task(_handle(raw))
            in_flight.add(task)
            task.add_done_callback(in_flight.discard)
    finally:
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)
