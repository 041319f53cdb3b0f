from __future__ import annotations

import json

import pytest

from transcriptflow.services import events
from transcriptflow.services.storage import (
    LocalStorageService,
    StorageService,
    get_media_storage,
    normalized_object_key,
    playback_object_key,
    source_object_key,
)


def test_object_keys_are_scoped_by_user_and_job() -> None:
    assert source_object_key("u", "j") == "media/u/j/original"
    assert normalized_object_key("u", "j") == "media/u/j/normalized.wav"
    assert playback_object_key("u", "j", ".m4a") == "media/u/j/playback.m4a"


@pytest.mark.asyncio
async def test_local_storage_round_trips_files(tmp_path) -> None:
    storage = LocalStorageService(str(tmp_path / "store"))
    src = tmp_path / "a.bin"
    src.write_bytes(b"payload")

    uri = await storage.upload_file(str(src), "/media/u/j/original")
    assert uri.startswith("file://")
    assert await storage.exists("media/u/j/original")
    assert not await storage.exists("media/u/j/other")

    dest = tmp_path / "out" / "copy.bin"
    await storage.download_file("media/u/j/original", str(dest))
    assert dest.read_bytes() == b"payload"


@pytest.mark.asyncio
async def test_local_storage_ignores_parent_segments(tmp_path) -> None:
    storage = LocalStorageService(str(tmp_path / "store"))
    src = tmp_path / "a.bin"
    src.write_bytes(b"x")

    await storage.upload_file(str(src), "../../escape/a.bin")

    assert (tmp_path / "store" / "escape" / "a.bin").is_file()


def test_media_storage_backend_selection(settings) -> None:
    assert isinstance(get_media_storage(settings), LocalStorageService)

    settings.media_storage_backend = "s3"
    s3 = get_media_storage(settings)
    assert isinstance(s3, StorageService)
    assert s3.object_uri("/media/u/j/normalized.wav") == (
        f"s3://{settings.s3_bucket_name}/media/u/j/normalized.wav"
    )


def test_job_created_event_carries_snapshot(make_job) -> None:
    payload = json.loads(events.job_created_event(make_job()))

    assert payload["job_id"] == "job-1"
    assert payload["snapshot"]["userId"] == "user-1"
    assert payload["snapshot"]["metadata"]["languageCodes"] == ["en-US", "nb-NO"]
    assert payload["snapshot"]["progress"] == {"status": "uploading"}


def test_dead_letter_event_records_error() -> None:
    payload = json.loads(events.dead_letter_event("{not json", ValueError("bad event")))

    assert payload == {"event": "{not json", "error": {"kind": "ValueError", "message": "bad event"}}
    assert events.progress_channel("j") == "transcriptflow:job:j:progress"
