"""Transcriber abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod

from transcriptflow.models.job import RecognitionMetadata
from transcriptflow.models.transcript import RecognitionResult
from transcriptflow.pipeline.context import ProgressReporter


class Transcriber(ABC):
    @abstractmethod
    async def transcribe(
        self,
        job_id: str,
        audio_uri: str,
        metadata: RecognitionMetadata,
        progress_reporter: ProgressReporter | None = None,
    ) -> list[RecognitionResult]:
        """Recognize speech in normalized audio.

        Args:
            job_id: Job identifier (for logging).
            audio_uri: Storage URI of the normalized audio.
            metadata: Caller-supplied recognition configuration.
            progress_reporter: Receives backend-reported percent complete.

        Returns:
            Results in backend order, each with ranked alternatives.

        Raises:
            TranscribeError: on any failure.
        """
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover
        return None
