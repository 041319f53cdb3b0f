"""Request/response models (camelCase on the wire)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from transcriptflow.models.job import RecognitionMetadata


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SpeechContextRequest(_CamelModel):
    phrases: list[str] = Field(default_factory=list)


class RecognitionMetadataRequest(_CamelModel):
    language_codes: list[str] = Field(min_length=1)
    original_mime_type: str = Field(min_length=1)
    industry_code: int | None = Field(default=None, alias="industryNaicsCodeOfAudio")
    interaction_type: str | None = None
    microphone_distance: str | None = None
    original_media_type: str | None = None
    recording_device_name: str | None = None
    recording_device_type: str | None = None
    audio_topic: str | None = None
    speech_contexts: list[SpeechContextRequest] = Field(default_factory=list)

    def to_metadata(self) -> RecognitionMetadata:
        return RecognitionMetadata.from_dict(self.model_dump(by_alias=True, exclude_none=True))


class CreateJobRequest(_CamelModel):
    user_id: str = Field(min_length=1)
    # Reserved by /uploads; the source must already be stored under it.
    job_id: str = Field(min_length=1)
    metadata: RecognitionMetadataRequest


class JobResponse(_CamelModel):
    id: str
    user_id: str | None = None
    progress: dict[str, Any]
    duration: float | None = None
    playback_url: str | None = None
    timestamps: dict[str, str | None] = Field(default_factory=dict)
    error: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    created_at: str | None = None
    updated_at: str | None = None


class JobResultsResponse(_CamelModel):
    job_id: str
    results: list[dict[str, Any]]


class StatisticsResponse(_CamelModel):
    duration: float
    words: int
    summaries: list[dict[str, Any]] = Field(default_factory=list)


class CreateUploadRequest(_CamelModel):
    user_id: str = Field(min_length=1)
    job_id: str | None = None


class UploadResponse(_CamelModel):
    job_id: str
    storage_key: str
    upload_url: str | None = None
    expires_in: int | None = None
    size_bytes: int | None = None
    content_type: str | None = None
