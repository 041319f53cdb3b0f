"""Persist recognition results and roll them into usage statistics."""

from __future__ import annotations

import logging

from transcriptflow.exceptions import PersistenceError
from transcriptflow.models.statistics import TranscriptSummary, UsageStatistics
from transcriptflow.models.transcript import RecognitionResult, ResultFragment
from transcriptflow.pipeline.context import ProgressReporter
from transcriptflow.storage.job_store import JobStore

logger = logging.getLogger(__name__)


def summarize(results: list[RecognitionResult], job_id: str) -> TranscriptSummary:
    """Totals for one job: latest word end time and word count."""
    duration = max((r.end_time() for r in results), default=0.0)
    words = sum(r.word_count() for r in results)
    return TranscriptSummary(job_id=job_id, duration=float(duration), words=int(words))


class ResultWriter:
    def __init__(self, store: JobStore) -> None:
        self.store = store

    async def save(
        self,
        results: list[RecognitionResult],
        job_id: str,
        progress_reporter: ProgressReporter | None = None,
    ) -> UsageStatistics:
        """Append one fragment per result, then record the job's summary.

        Returns the updated aggregate statistics.
        """
        total = len(results)
        try:
            for index, result in enumerate(results):
                fragment = ResultFragment.from_result(result)
                if not fragment.words or fragment.words[0].start_time is None:
                    logger.warning(
                        "fragment has no first-word start time; sorting as 0 (job_id=%s, index=%d)",
                        job_id,
                        index,
                    )
                await self.store.append_result_fragment(job_id, fragment)
                if progress_reporter is not None:
                    await progress_reporter.report((index + 1) * 100 // total, "saving results")

            summary = summarize(results, job_id)
            statistics = await self.store.record_summary(summary)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(f"saving results failed (job_id={job_id}): {exc}") from exc

        logger.info(
            "results saved (job_id=%s, fragments=%d, words=%d, duration_s=%.2f)",
            job_id,
            total,
            summary.words,
            summary.duration,
        )
        return statistics
