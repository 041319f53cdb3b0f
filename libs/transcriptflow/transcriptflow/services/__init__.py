"""Services for TranscriptFlow."""

from transcriptflow.services.events import (
    DEAD_LETTER_QUEUE,
    JOBS_CREATED_QUEUE,
    job_created_event,
    progress_channel,
)
from transcriptflow.services.storage import (
    LocalStorageService,
    MediaStorage,
    StorageService,
    get_media_storage,
    normalized_object_key,
    playback_object_key,
    source_object_key,
)

__all__ = [
    "DEAD_LETTER_QUEUE",
    "JOBS_CREATED_QUEUE",
    "LocalStorageService",
    "MediaStorage",
    "StorageService",
    "get_media_storage",
    "job_created_event",
    "normalized_object_key",
    "playback_object_key",
    "progress_channel",
    "source_object_key",
]
