"""Job store interface.

The job store owns every piece of persisted pipeline state: the job record,
its ordered result fragments and the aggregate usage statistics. Writes to the
job record are partial merges; only the named fields change.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from transcriptflow.models.error import ErrorRecord
from transcriptflow.models.job import Job, JobStage
from transcriptflow.models.statistics import TranscriptSummary, UsageStatistics
from transcriptflow.models.transcript import ResultFragment


class JobStore(ABC):
    @abstractmethod
    async def create_job(self, job: Job) -> Job:
        """Insert a new job record."""

    @abstractmethod
    async def get_job(self, job_id: str) -> Job | None:
        """Return the job record, or None if it does not exist."""

    @abstractmethod
    async def get_stage(self, job_id: str) -> JobStage:
        """Return the current stage. Raises JobNotFoundError if absent."""

    @abstractmethod
    async def set_stage(self, job_id: str, stage: JobStage) -> None:
        """Move the job to `stage`.

        The write only applies when the current stage is an allowed
        predecessor (StageTransitionError otherwise). Entering a
        percent-bearing stage resets percent to 0; any other stage clears it.
        The completion timestamp of the previous stage is stamped.
        """

    @abstractmethod
    async def set_percent(self, job_id: str, percent: int) -> None:
        """Report progress within the current stage (clamped to 0..100).

        Ignored unless the job is in a percent-bearing stage.
        """

    @abstractmethod
    async def set_duration(self, job_id: str, seconds: float) -> None: ...

    @abstractmethod
    async def set_playback_url(self, job_id: str, url: str) -> None: ...

    @abstractmethod
    async def record_error(self, job_id: str, error: ErrorRecord) -> None:
        """Mark the job Failed with a serialized cause and stamp failedAt.

        Terminal jobs are left untouched.
        """

    @abstractmethod
    async def append_result_fragment(self, job_id: str, fragment: ResultFragment) -> str:
        """Append a fragment to the job's results; returns the storage id."""

    @abstractmethod
    async def list_result_fragments(self, job_id: str) -> list[ResultFragment]:
        """Fragments ascending by start_time_seconds, ties by storage id."""

    @abstractmethod
    async def record_summary(self, summary: TranscriptSummary) -> UsageStatistics:
        """Add a summary to the aggregate statistics in one atomic batch.

        Reads the aggregate, adds the summary totals, writes the aggregate and
        the summary child record. Either both writes are visible or neither.
        """

    @abstractmethod
    async def get_usage_statistics(self) -> UsageStatistics: ...

    @abstractmethod
    async def list_summaries(self, limit: int = 100) -> list[TranscriptSummary]:
        """Most recent summaries first."""

    async def close(self) -> None:  # pragma: no cover
        return None
