"""Pipeline context typing.

The orchestrator passes a context dict between stages. This module defines
the known keys and the progress/hook callables shared with the adapters.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol, TypedDict

from transcriptflow.models.job import RecognitionMetadata
from transcriptflow.models.transcript import RecognitionResult


class ProgressReporter(Protocol):
    async def report(self, progress: int, message: str) -> None: ...


JobUpdateHook = Callable[[str], Awaitable[None]]


class PipelineContext(TypedDict, total=False):
    job_id: str
    user_id: str
    metadata: RecognitionMetadata

    duration: float
    audio_uri: str
    playback_url: str | None

    results: list[RecognitionResult]
    fragment_count: int
