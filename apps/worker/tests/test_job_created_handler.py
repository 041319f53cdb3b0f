from __future__ import annotations

import asyncio
import json

import pytest

from handlers.job_handler import consume, make_progress_publisher, process_job_created
from transcriptflow.exceptions import PersistenceError, TranscodeError
from transcriptflow.models.job import JobStage
from transcriptflow.pipeline import PipelineOrchestrator
from transcriptflow.services.events import (
    DEAD_LETTER_QUEUE,
    JOBS_CREATED_QUEUE,
    job_created_event,
    progress_channel,
)
from transcriptflow.storage.memory_store import MemoryJobStore
from worker_fakes import FakeRedis, StaticTranscoder, StaticTranscriber


def _orchestrator(store, redis, transcoder=None) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        store,
        transcoder or StaticTranscoder(),
        StaticTranscriber(),
        on_job_update=make_progress_publisher(redis, store),
        progress_min_interval_s=0,
    )


@pytest.mark.asyncio
async def test_created_event_runs_pipeline_and_publishes_progress(store, job) -> None:
    redis = FakeRedis()
    await store.create_job(job)

    await process_job_created(job_created_event(job), orchestrator=_orchestrator(store, redis), redis=redis)

    assert (await store.get_stage("job-1")) == JobStage.DONE
    channels = {c for c, _ in redis.published}
    assert channels == {progress_channel("job-1")}
    statuses = [json.loads(m)["status"] for _, m in redis.published]
    assert statuses[0] == "transcoding"
    assert statuses[-1] == "done"
    assert redis.lists[DEAD_LETTER_QUEUE] == []


@pytest.mark.asyncio
async def test_malformed_event_goes_to_dead_letter(store) -> None:
    redis = FakeRedis()

    await process_job_created("{nope", orchestrator=_orchestrator(store, redis), redis=redis)

    parked = json.loads(redis.lists[DEAD_LETTER_QUEUE][0])
    assert parked["event"] == "{nope"
    assert parked["error"]["kind"] == "JSONDecodeError"


@pytest.mark.asyncio
async def test_event_without_job_id_goes_to_dead_letter(store) -> None:
    redis = FakeRedis()

    await process_job_created(json.dumps({"snapshot": {}}), orchestrator=_orchestrator(store, redis), redis=redis)

    parked = json.loads(redis.lists[DEAD_LETTER_QUEUE][0])
    assert parked["error"] == {"kind": "ValueError", "message": "job_id missing"}


@pytest.mark.asyncio
async def test_pipeline_failure_is_recorded_and_dead_lettered(store, job) -> None:
    redis = FakeRedis()
    await store.create_job(job)
    transcoder = StaticTranscoder(error=TranscodeError("ffmpeg", "bad input"))

    await process_job_created(
        job_created_event(job), orchestrator=_orchestrator(store, redis, transcoder), redis=redis
    )

    stored = await store.get_job("job-1")
    assert stored is not None and stored.stage == JobStage.FAILED
    assert stored.error is not None and stored.error.code == "TRANSCODE_FAILED"
    parked = json.loads(redis.lists[DEAD_LETTER_QUEUE][0])
    assert parked["event"]["job_id"] == "job-1"
    assert parked["error"]["kind"] == "TranscodeError"
    assert json.loads(redis.published[-1][1]) == {"status": "failed"}


@pytest.mark.asyncio
async def test_redelivered_event_is_ignored(store, job) -> None:
    redis = FakeRedis()
    await store.create_job(job)
    transcoder = StaticTranscoder()
    orchestrator = _orchestrator(store, redis, transcoder)
    event = job_created_event(job)

    await process_job_created(event, orchestrator=orchestrator, redis=redis)
    await process_job_created(event, orchestrator=orchestrator, redis=redis)

    assert transcoder.calls == 1
    assert redis.lists[DEAD_LETTER_QUEUE] == []
    assert len(await store.list_summaries()) == 1


@pytest.mark.asyncio
async def test_publish_failure_does_not_fail_the_job(store, job) -> None:
    redis = FakeRedis(fail_publish=True)
    await store.create_job(job)

    await process_job_created(job_created_event(job), orchestrator=_orchestrator(store, redis), redis=redis)

    assert (await store.get_stage("job-1")) == JobStage.DONE


class _UnreadableStore(MemoryJobStore):
    async def get_job(self, job_id: str):  # noqa: ANN201
        raise PersistenceError("database unavailable")


@pytest.mark.asyncio
async def test_progress_publisher_tolerates_store_read_failure(job) -> None:
    redis = FakeRedis()
    store = _UnreadableStore()
    await store.create_job(job)
    publish = make_progress_publisher(redis, store)

    await publish("job-1")

    assert redis.published == []


class _CountingOrchestrator:
    def __init__(self) -> None:
        self.active = 0
        self.max_active = 0
        self.seen: list[str] = []

    async def run(self, job_id, snapshot=None):  # noqa: ANN001
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        await asyncio.sleep(0.01)
        self.seen.append(job_id)
        self.active -= 1


@pytest.mark.asyncio
async def test_consume_processes_queue_with_bounded_concurrency() -> None:
    redis = FakeRedis()
    for job_id in ("a", "b", "c", "d"):
        await redis.lpush(JOBS_CREATED_QUEUE, json.dumps({"job_id": job_id}))
    stop = asyncio.Event()
    redis.on_empty = stop
    orchestrator = _CountingOrchestrator()

    await asyncio.wait_for(
        consume(redis, orchestrator, concurrency=2, poll_timeout_s=1, stop=stop), timeout=5
    )

    assert sorted(orchestrator.seen) == ["a", "b", "c", "d"]
    assert orchestrator.max_active == 2
    assert redis.lists[JOBS_CREATED_QUEUE] == []
