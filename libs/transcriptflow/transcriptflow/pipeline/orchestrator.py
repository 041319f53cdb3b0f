"""Job pipeline orchestrator (transcode -> transcribe -> save)."""

from __future__ import annotations

import logging
import time
from typing import Any

from transcriptflow.exceptions import StageTransitionError, ValidationError
from transcriptflow.models.error import ErrorRecord
from transcriptflow.models.job import Job, JobStage, RecognitionMetadata
from transcriptflow.pipeline.context import JobUpdateHook, PipelineContext
from transcriptflow.pipeline.progress import JobProgressReporter
from transcriptflow.pipeline.result_writer import ResultWriter
from transcriptflow.providers.transcriber.base import Transcriber
from transcriptflow.providers.transcoder.base import Transcoder
from transcriptflow.storage.job_store import JobStore

logger = logging.getLogger(__name__)


def validate_job(job: Job | None) -> tuple[str, RecognitionMetadata]:
    """Check the fields a job needs before any external call is made."""
    if job is None:
        raise ValidationError("job", "job missing")
    if not job.user_id:
        raise ValidationError("userId", "user id missing")
    if job.metadata is None:
        raise ValidationError("metadata", "metadata missing")
    if not job.metadata.language_codes:
        raise ValidationError("languageCodes", "language codes missing")
    if not job.metadata.original_mime_type:
        raise ValidationError("originalMimeType", "original mime type missing")
    return job.user_id, job.metadata


class PipelineOrchestrator:
    """Drives one job through the stages, recording failures in the job store.

    Holds no state of its own: every transition is a durable write, so the
    orchestrator can be re-invoked for the same job at any time.
    """

    def __init__(
        self,
        store: JobStore,
        transcoder: Transcoder,
        transcriber: Transcriber,
        *,
        result_writer: ResultWriter | None = None,
        on_job_update: JobUpdateHook | None = None,
        progress_min_percent_step: int = 5,
        progress_min_interval_s: float = 2.0,
    ) -> None:
        self.store = store
        self.transcoder = transcoder
        self.transcriber = transcriber
        self.result_writer = result_writer or ResultWriter(store)
        self._on_job_update = on_job_update
        self._progress_min_percent_step = progress_min_percent_step
        self._progress_min_interval_s = progress_min_interval_s

    async def _notify_update(self, job_id: str) -> None:
        # Best effort: a failing hook never changes the job's outcome.
        if self._on_job_update is None:
            return
        try:
            await self._on_job_update(job_id)
        except Exception as exc:
            logger.warning("job update hook failed (job_id=%s, error=%r)", job_id, exc)

    async def _enter(self, job_id: str, stage: JobStage) -> None:
        await self.store.set_stage(job_id, stage)
        logger.info("stage start (job_id=%s, stage=%s)", job_id, stage.value)
        await self._notify_update(job_id)

    def _reporter(self, job_id: str) -> JobProgressReporter:
        return JobProgressReporter(
            store=self.store,
            job_id=job_id,
            notify_update=self._notify_update if self._on_job_update is not None else None,
            min_percent_step=self._progress_min_percent_step,
            min_interval_s=self._progress_min_interval_s,
        )

    async def _load(self, job_id: str, snapshot: Job | dict[str, Any] | None) -> Job | None:
        if isinstance(snapshot, Job):
            return snapshot
        if isinstance(snapshot, dict):
            return Job.from_dict(snapshot, job_id=job_id)
        return await self.store.get_job(job_id)

    async def run(
        self,
        job_id: str,
        snapshot: Job | dict[str, Any] | None = None,
    ) -> Job | None:
        """Process one creation event.

        Returns the final job record, or None when the job was not in the
        initial stage (already processed, or claimed by a concurrent run).
        Any failure is recorded on the job and re-raised unchanged.
        """
        stage = await self.store.get_stage(job_id)
        if stage != JobStage.UPLOADING:
            logger.warning("job already processed, skipping (job_id=%s, stage=%s)", job_id, stage.value)
            return None

        started = time.perf_counter()
        ctx: PipelineContext = {"job_id": job_id}
        current = JobStage.UPLOADING
        try:
            user_id, metadata = validate_job(await self._load(job_id, snapshot))
            ctx["user_id"] = user_id
            ctx["metadata"] = metadata

            try:
                await self._enter(job_id, JobStage.TRANSCODING)
            except StageTransitionError:
                logger.info("job claimed by another run, skipping (job_id=%s)", job_id)
                return None
            current = JobStage.TRANSCODING
            stage_started = time.perf_counter()
            output = await self.transcoder.transcode(
                job_id, user_id, progress_reporter=self._reporter(job_id)
            )
            ctx["duration"] = output.duration
            ctx["audio_uri"] = output.audio_uri
            ctx["playback_url"] = output.playback_url
            await self.store.set_duration(job_id, output.duration)
            if output.playback_url:
                await self.store.set_playback_url(job_id, output.playback_url)
            self._log_stage_done(job_id, current, stage_started)

            await self._enter(job_id, JobStage.TRANSCRIBING)
            current = JobStage.TRANSCRIBING
            stage_started = time.perf_counter()
            ctx["results"] = await self.transcriber.transcribe(
                job_id,
                ctx["audio_uri"],
                metadata,
                progress_reporter=self._reporter(job_id),
            )
            self._log_stage_done(job_id, current, stage_started)

            await self._enter(job_id, JobStage.SAVING)
            current = JobStage.SAVING
            stage_started = time.perf_counter()
            await self.result_writer.save(
                ctx["results"], job_id, progress_reporter=self._reporter(job_id)
            )
            ctx["fragment_count"] = len(ctx["results"])
            self._log_stage_done(job_id, current, stage_started)

            await self._enter(job_id, JobStage.DONE)
        except Exception as exc:
            logger.exception("job failed (job_id=%s, stage=%s)", job_id, current.value)
            try:
                await self.store.record_error(job_id, ErrorRecord.from_exception(exc))
            finally:
                await self._notify_update(job_id)
            raise

        logger.info(
            "job done (job_id=%s, fragments=%d, duration_s=%.2f, elapsed_ms=%d)",
            job_id,
            ctx.get("fragment_count", 0),
            ctx.get("duration", 0.0),
            int((time.perf_counter() - started) * 1000),
        )
        return await self.store.get_job(job_id)

    @staticmethod
    def _log_stage_done(job_id: str, stage: JobStage, started: float) -> None:
        logger.info(
            "stage done (job_id=%s, stage=%s, duration_ms=%d)",
            job_id,
            stage.value,
            int((time.perf_counter() - started) * 1000),
        )
