"""Transcoder abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from transcriptflow.pipeline.context import ProgressReporter


@dataclass
class TranscodeOutput:
    """Normalized audio produced from an uploaded source."""

    duration: float
    audio_uri: str
    playback_url: str | None = None


class Transcoder(ABC):
    @abstractmethod
    async def transcode(
        self,
        job_id: str,
        user_id: str,
        progress_reporter: ProgressReporter | None = None,
    ) -> TranscodeOutput:
        """Convert the job's uploaded source into recognition-ready audio.

        Raises:
            TranscodeError: on any failure.
        """
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover
        return None
