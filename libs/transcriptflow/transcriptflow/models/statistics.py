"""Aggregate usage statistics and per-job summaries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class TranscriptSummary:
    job_id: str
    duration: float
    words: int
    created_at: datetime = field(default_factory=_utcnow)
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "jobId": self.job_id,
            "duration": float(self.duration),
            "words": int(self.words),
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class UsageStatistics:
    duration: float = 0.0
    words: int = 0

    def add(self, summary: TranscriptSummary) -> "UsageStatistics":
        return UsageStatistics(
            duration=float(self.duration) + float(summary.duration),
            words=int(self.words) + int(summary.words),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"duration": float(self.duration), "words": int(self.words)}
