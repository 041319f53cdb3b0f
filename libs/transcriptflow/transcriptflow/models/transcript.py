"""Recognition results and persisted transcript fragments."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any


def parse_time_offset(value: object) -> float | None:
    """Parse a backend time offset into seconds.

    Accepts duration strings (``"1.100s"``), ``{"seconds": "1", "nanos": 100000000}``
    objects and plain numbers. Returns None when the value cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith("s"):
            raw = raw[:-1]
        try:
            seconds = float(raw)
        except ValueError:
            return None
    elif isinstance(value, dict):
        try:
            seconds = float(value.get("seconds") or 0) + float(value.get("nanos") or 0) / 1e9
        except (TypeError, ValueError):
            return None
    else:
        return None
    if math.isnan(seconds) or math.isinf(seconds):
        return None
    return seconds


def _opt_float(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _opt_int(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


@dataclass
class Word:
    text: str
    start_time: float | None = None
    end_time: float | None = None
    speaker_tag: int | None = None
    confidence: float | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "word": self.text,
            "startTime": self.start_time,
            "endTime": self.end_time,
        }
        if self.speaker_tag is not None:
            out["speakerTag"] = self.speaker_tag
        if self.confidence is not None:
            out["confidence"] = self.confidence
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Word":
        return cls(
            text=str(data.get("word") or ""),
            start_time=parse_time_offset(data.get("startTime")),
            end_time=parse_time_offset(data.get("endTime")),
            speaker_tag=_opt_int(data.get("speakerTag")),
            confidence=_opt_float(data.get("confidence")),
        )


@dataclass
class RecognitionAlternative:
    transcript: str = ""
    confidence: float | None = None
    words: list[Word] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecognitionAlternative":
        return cls(
            transcript=str(data.get("transcript") or ""),
            confidence=_opt_float(data.get("confidence")),
            words=[Word.from_dict(w) for w in list(data.get("words") or []) if isinstance(w, dict)],
        )


@dataclass
class RecognitionResult:
    alternatives: list[RecognitionAlternative] = field(default_factory=list)
    language_code: str | None = None

    @property
    def best(self) -> RecognitionAlternative | None:
        return self.alternatives[0] if self.alternatives else None

    def word_count(self) -> int:
        best = self.best
        if best is None:
            return 0
        if best.words:
            return len(best.words)
        return len(best.transcript.split())

    def end_time(self) -> float:
        best = self.best
        if best is None:
            return 0.0
        ends = [w.end_time for w in best.words if w.end_time is not None]
        return max(ends) if ends else 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecognitionResult":
        language = data.get("languageCode")
        return cls(
            alternatives=[
                RecognitionAlternative.from_dict(a)
                for a in list(data.get("alternatives") or [])
                if isinstance(a, dict)
            ],
            language_code=str(language) if language else None,
        )


def start_time_seconds(words: list[Word]) -> int:
    """Sort key of a fragment: whole seconds of its first word, 0 when unknown."""
    if not words or words[0].start_time is None:
        return 0
    return int(words[0].start_time)


@dataclass
class ResultFragment:
    """One persisted recognition segment, ordered by `start_time_seconds`."""

    words: list[Word] = field(default_factory=list)
    transcript: str = ""
    confidence: float | None = None
    language_code: str | None = None
    start_time_seconds: int = 0
    id: str | None = None

    @classmethod
    def from_result(cls, result: RecognitionResult) -> "ResultFragment":
        best = result.best or RecognitionAlternative()
        return cls(
            words=list(best.words),
            transcript=best.transcript,
            confidence=best.confidence,
            language_code=result.language_code,
            start_time_seconds=start_time_seconds(best.words),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "startTime": int(self.start_time_seconds),
            "transcript": self.transcript,
            "confidence": self.confidence,
            "languageCode": self.language_code,
            "words": [w.to_dict() for w in self.words],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResultFragment":
        start = data.get("startTime")
        return cls(
            words=[Word.from_dict(w) for w in list(data.get("words") or []) if isinstance(w, dict)],
            transcript=str(data.get("transcript") or ""),
            confidence=_opt_float(data.get("confidence")),
            language_code=str(data["languageCode"]) if data.get("languageCode") else None,
            start_time_seconds=int(start) if isinstance(start, (int, float)) else 0,
            id=str(data["id"]) if data.get("id") is not None else None,
        )
