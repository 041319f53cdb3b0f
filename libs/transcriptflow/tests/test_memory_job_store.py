from __future__ import annotations

import asyncio

import pytest

from pipeline_fakes import result_with_words
from transcriptflow.exceptions import JobNotFoundError, PersistenceError, StageTransitionError
from transcriptflow.models.error import ErrorRecord
from transcriptflow.models.job import JobStage
from transcriptflow.models.statistics import TranscriptSummary, UsageStatistics
from transcriptflow.models.transcript import ResultFragment


def _fragment(start: float | None) -> ResultFragment:
    return ResultFragment.from_result(result_with_words(("w", start, None)))


@pytest.mark.asyncio
@pytest.mark.parametrize("starts", [(5.2, 1.1), (1.1, 5.2)])
async def test_fragments_sorted_by_start_for_any_insertion_order(store, make_job, starts) -> None:
    await store.create_job(make_job())
    for start in starts:
        await store.append_result_fragment("job-1", _fragment(start))

    fragments = await store.list_result_fragments("job-1")

    assert [f.start_time_seconds for f in fragments] == [1, 5]
    assert fragments[0].words[0].start_time == pytest.approx(1.1)
    assert all(f.id for f in fragments)


@pytest.mark.asyncio
async def test_fragment_without_start_time_sorts_as_zero(store, make_job) -> None:
    await store.create_job(make_job())
    await store.append_result_fragment("job-1", _fragment(3.0))
    await store.append_result_fragment("job-1", _fragment(None))

    fragments = await store.list_result_fragments("job-1")

    assert [f.start_time_seconds for f in fragments] == [0, 3]


@pytest.mark.asyncio
async def test_stage_follows_monotonic_path(store, make_job) -> None:
    await store.create_job(make_job())

    for stage in (JobStage.TRANSCODING, JobStage.TRANSCRIBING, JobStage.SAVING, JobStage.DONE):
        await store.set_stage("job-1", stage)
        assert await store.get_stage("job-1") == stage

    for illegal in (JobStage.UPLOADING, JobStage.TRANSCODING, JobStage.FAILED):
        with pytest.raises(StageTransitionError):
            await store.set_stage("job-1", illegal)
    assert await store.get_stage("job-1") == JobStage.DONE


@pytest.mark.asyncio
async def test_stage_cannot_skip_ahead(store, make_job) -> None:
    await store.create_job(make_job())

    with pytest.raises(StageTransitionError) as excinfo:
        await store.set_stage("job-1", JobStage.SAVING)

    assert excinfo.value.current == "uploading"
    assert excinfo.value.target == "saving"
    assert await store.get_stage("job-1") == JobStage.UPLOADING


@pytest.mark.asyncio
async def test_percent_only_present_in_progress_stages(store, make_job) -> None:
    await store.create_job(make_job())

    await store.set_percent("job-1", 40)
    assert (await store.get_job("job-1")).percent is None

    await store.set_stage("job-1", JobStage.TRANSCODING)
    assert (await store.get_job("job-1")).percent == 0
    await store.set_percent("job-1", 140)
    assert (await store.get_job("job-1")).percent == 100

    await store.set_stage("job-1", JobStage.TRANSCRIBING)
    job = await store.get_job("job-1")
    assert job.percent == 0
    assert job.progress == {"status": "transcribing", "percent": 0}

    await store.set_stage("job-1", JobStage.SAVING)
    await store.set_stage("job-1", JobStage.DONE)
    job = await store.get_job("job-1")
    assert job.percent is None
    assert job.progress == {"status": "done"}
    await store.set_percent("job-1", 10)
    assert (await store.get_job("job-1")).percent is None


@pytest.mark.asyncio
async def test_record_error_marks_failed_once(store, make_job) -> None:
    await store.create_job(make_job())
    await store.set_stage("job-1", JobStage.TRANSCODING)
    await store.set_percent("job-1", 30)

    await store.record_error("job-1", ErrorRecord(kind="TranscodeError", message="boom", code="TRANSCODE_FAILED"))
    job = await store.get_job("job-1")
    failed_at = job.timestamps["failedAt"]
    assert job.stage == JobStage.FAILED
    assert job.percent is None
    assert job.error.message == "boom"

    await store.record_error("job-1", ErrorRecord(kind="Other", message="later", code="UNKNOWN"))
    again = await store.get_job("job-1")
    assert again.error.message == "boom"
    assert again.timestamps["failedAt"] == failed_at


@pytest.mark.asyncio
async def test_completion_timestamps_are_stamped_on_entry(store, make_job) -> None:
    await store.create_job(make_job())
    await store.set_stage("job-1", JobStage.TRANSCODING)
    assert set((await store.get_job("job-1")).timestamps) == {"createdAt"}

    await store.set_stage("job-1", JobStage.TRANSCRIBING)
    await store.set_stage("job-1", JobStage.SAVING)
    await store.set_stage("job-1", JobStage.DONE)

    stamps = (await store.get_job("job-1")).timestamps
    assert stamps["createdAt"] <= stamps["transcodedAt"] <= stamps["transcribedAt"] <= stamps["savedAt"]


@pytest.mark.asyncio
async def test_missing_job_raises_not_found(store) -> None:
    assert await store.get_job("nope") is None
    with pytest.raises(JobNotFoundError):
        await store.get_stage("nope")
    with pytest.raises(JobNotFoundError):
        await store.set_stage("nope", JobStage.TRANSCODING)
    with pytest.raises(JobNotFoundError):
        await store.append_result_fragment("nope", _fragment(1.0))


@pytest.mark.asyncio
async def test_create_job_rejects_duplicate_id(store, make_job) -> None:
    await store.create_job(make_job())
    with pytest.raises(PersistenceError):
        await store.create_job(make_job())


@pytest.mark.asyncio
async def test_reads_are_isolated_from_stored_state(store, make_job) -> None:
    await store.create_job(make_job())
    job = await store.get_job("job-1")
    job.stage = JobStage.DONE
    job.metadata.language_codes.append("de-DE")

    stored = await store.get_job("job-1")
    assert stored.stage == JobStage.UPLOADING
    assert stored.metadata.language_codes == ["en-US", "nb-NO"]


@pytest.mark.asyncio
async def test_concurrent_summaries_are_not_lost(store) -> None:
    summaries = [TranscriptSummary(job_id=f"j{i}", duration=1.5, words=10) for i in range(50)]

    await asyncio.gather(*(store.record_summary(s) for s in summaries))

    stats = await store.get_usage_statistics()
    assert stats == UsageStatistics(duration=75.0, words=500)
    listed = await store.list_summaries(limit=100)
    assert len(listed) == 50
    assert len({s.id for s in listed}) == 50


@pytest.mark.asyncio
async def test_record_summary_returns_updated_aggregate(store) -> None:
    first = await store.record_summary(TranscriptSummary(job_id="a", duration=2.0, words=3))
    second = await store.record_summary(TranscriptSummary(job_id="b", duration=1.0, words=4))

    assert first == UsageStatistics(duration=2.0, words=3)
    assert second == UsageStatistics(duration=3.0, words=7)
    assert [s.job_id for s in await store.list_summaries(limit=1)] == ["b"]


@pytest.mark.asyncio
async def test_failed_summary_batch_leaves_nothing_visible(store, monkeypatch) -> None:
    await store.record_summary(TranscriptSummary(job_id="a", duration=2.0, words=3))

    def _boom() -> str:
        raise RuntimeError("id allocation failed")

    monkeypatch.setattr(store, "_new_id", _boom)
    with pytest.raises(RuntimeError):
        await store.record_summary(TranscriptSummary(job_id="b", duration=5.0, words=9))

    assert await store.get_usage_statistics() == UsageStatistics(duration=2.0, words=3)
    assert [s.job_id for s in await store.list_summaries()] == ["a"]
