"""Job model (one submitted media item)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from transcriptflow.models.error import ErrorRecord


class JobStage(str, Enum):
    UPLOADING = "uploading"
    TRANSCODING = "transcoding"
    TRANSCRIBING = "transcribing"
    SAVING = "saving"
    DONE = "done"
    FAILED = "failed"


STAGE_ORDER: list[JobStage] = [
    JobStage.UPLOADING,
    JobStage.TRANSCODING,
    JobStage.TRANSCRIBING,
    JobStage.SAVING,
    JobStage.DONE,
]

TERMINAL_STAGES: frozenset[JobStage] = frozenset({JobStage.DONE, JobStage.FAILED})

# Stages that carry a completion percentage.
PERCENT_STAGES: frozenset[JobStage] = frozenset(
    {JobStage.TRANSCODING, JobStage.TRANSCRIBING, JobStage.SAVING}
)

NON_TERMINAL_STAGES: frozenset[JobStage] = frozenset(set(JobStage) - TERMINAL_STAGES)

# Nothing may move a job back to UPLOADING, so it has no predecessors.
ALLOWED_PREDECESSORS: dict[JobStage, frozenset[JobStage]] = {
    JobStage.UPLOADING: frozenset(),
    JobStage.TRANSCODING: frozenset({JobStage.UPLOADING}),
    JobStage.TRANSCRIBING: frozenset({JobStage.TRANSCODING}),
    JobStage.SAVING: frozenset({JobStage.TRANSCRIBING}),
    JobStage.DONE: frozenset({JobStage.SAVING}),
    JobStage.FAILED: NON_TERMINAL_STAGES,
}

# Entering a stage stamps the completion of the previous one.
COMPLETION_TIMESTAMPS: dict[JobStage, str] = {
    JobStage.TRANSCRIBING: "transcodedAt",
    JobStage.SAVING: "transcribedAt",
    JobStage.DONE: "savedAt",
    JobStage.FAILED: "failedAt",
}


def can_transition(current: JobStage, target: JobStage) -> bool:
    return current in ALLOWED_PREDECESSORS.get(target, frozenset())


def percent_on_enter(stage: JobStage) -> int | None:
    return 0 if stage in PERCENT_STAGES else None


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _dt_to_iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _dt_from_iso(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    return datetime.fromisoformat(str(value))


def _opt_str(value: object) -> str | None:
    raw = str(value).strip() if value is not None else ""
    return raw or None


def _str_list(value: object) -> list[str]:
    # Only real sequences count; a bare string is treated as missing.
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if str(v).strip()]


@dataclass
class SpeechContext:
    phrases: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"phrases": list(self.phrases)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SpeechContext":
        return cls(phrases=_str_list(data.get("phrases")))


@dataclass
class RecognitionMetadata:
    """Caller-supplied recognition configuration. Immutable after job creation."""

    language_codes: list[str] = field(default_factory=list)
    original_mime_type: str | None = None
    industry_code: int | None = None
    interaction_type: str | None = None
    microphone_distance: str | None = None
    original_media_type: str | None = None
    recording_device_name: str | None = None
    recording_device_type: str | None = None
    audio_topic: str | None = None
    speech_contexts: list[SpeechContext] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"languageCodes": list(self.language_codes)}
        optional = {
            "originalMimeType": self.original_mime_type,
            "industryNaicsCodeOfAudio": self.industry_code,
            "interactionType": self.interaction_type,
            "microphoneDistance": self.microphone_distance,
            "originalMediaType": self.original_media_type,
            "recordingDeviceName": self.recording_device_name,
            "recordingDeviceType": self.recording_device_type,
            "audioTopic": self.audio_topic,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        if self.speech_contexts:
            out["speechContexts"] = [c.to_dict() for c in self.speech_contexts]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecognitionMetadata":
        industry = data.get("industryNaicsCodeOfAudio")
        return cls(
            language_codes=_str_list(data.get("languageCodes")),
            original_mime_type=_opt_str(data.get("originalMimeType")),
            industry_code=int(industry) if isinstance(industry, (int, str)) and str(industry).isdigit() else None,
            interaction_type=_opt_str(data.get("interactionType")),
            microphone_distance=_opt_str(data.get("microphoneDistance")),
            original_media_type=_opt_str(data.get("originalMediaType")),
            recording_device_name=_opt_str(data.get("recordingDeviceName")),
            recording_device_type=_opt_str(data.get("recordingDeviceType")),
            audio_topic=_opt_str(data.get("audioTopic")),
            speech_contexts=[
                SpeechContext.from_dict(x)
                for x in list(data.get("speechContexts") or [])
                if isinstance(x, dict)
            ],
        )


@dataclass
class Job:
    id: str
    user_id: str | None = None
    stage: JobStage = JobStage.UPLOADING
    percent: int | None = None
    duration: float | None = None
    playback_url: str | None = None
    timestamps: dict[str, datetime] = field(default_factory=dict)
    error: ErrorRecord | None = None
    metadata: RecognitionMetadata | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def touch(self) -> None:
        self.updated_at = _utcnow()

    @property
    def progress(self) -> dict[str, Any]:
        out: dict[str, Any] = {"status": self.stage.value}
        if self.percent is not None:
            out["percent"] = int(self.percent)
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "progress": self.progress,
            "duration": self.duration,
            "playbackUrl": self.playback_url,
            "timestamps": {k: _dt_to_iso(v) for k, v in self.timestamps.items()},
            "error": self.error.to_dict() if self.error is not None else None,
            "metadata": self.metadata.to_dict() if self.metadata is not None else None,
            "createdAt": _dt_to_iso(self.created_at),
            "updatedAt": _dt_to_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, job_id: str | None = None) -> "Job":
        progress = data.get("progress") if isinstance(data.get("progress"), dict) else {}
        status = progress.get("status") or data.get("stage") or JobStage.UPLOADING.value
        percent = progress.get("percent")
        duration = data.get("duration")
        timestamps_raw = data.get("timestamps") if isinstance(data.get("timestamps"), dict) else {}
        metadata_raw = data.get("metadata")
        error_raw = data.get("error")
        return cls(
            id=str(job_id or data.get("id") or ""),
            user_id=_opt_str(data.get("userId")),
            stage=JobStage(str(status)),
            percent=int(percent) if isinstance(percent, (int, float)) else None,
            duration=float(duration) if isinstance(duration, (int, float)) else None,
            playback_url=_opt_str(data.get("playbackUrl")),
            timestamps={
                str(k): dt for k, v in timestamps_raw.items() if (dt := _dt_from_iso(v)) is not None
            },
            error=ErrorRecord.from_dict(error_raw) if isinstance(error_raw, dict) else None,
            metadata=RecognitionMetadata.from_dict(metadata_raw)
            if isinstance(metadata_raw, dict)
            else None,
            created_at=_dt_from_iso(data.get("createdAt")) or _utcnow(),
            updated_at=_dt_from_iso(data.get("updatedAt")) or _utcnow(),
        )
