"""Uploads API routes.

Clients either request a presigned PUT URL for the job's source object, or
post the file through the API, which streams it into media storage.
"""

from __future__ import annotations

import mimetypes
import tempfile
from pathlib import Path
from uuid import uuid4

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile

from routes._deps import media_storage, settings
from routes.schemas import CreateUploadRequest, UploadResponse
from transcriptflow.services.storage import source_object_key

router = APIRouter(prefix="/uploads", tags=["uploads"])


def _detect_content_type(filename: str | None, provided: str | None) -> str:
    candidate = str(provided or "").strip()
    if candidate:
        return candidate
    guessed, _ = mimetypes.guess_type(str(filename or ""))
    return str(guessed or "application/octet-stream")


async def _write_upload_to_path(
    upload: UploadFile,
    target_path: Path,
    *,
    max_bytes: int,
    chunk_size: int = 8 * 1024 * 1024,
) -> int:
    target_path.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    with target_path.open("wb") as f:
        while True:
            chunk = await upload.read(chunk_size)
            if not chunk:
                break
            written += len(chunk)
            if written > max_bytes:
                raise HTTPException(status_code=413, detail="file too large")
            f.write(chunk)
    return written


@router.post("", response_model=UploadResponse)
async def create_upload(request: Request, payload: CreateUploadRequest) -> UploadResponse:
    """Reserve a job id and return a presigned PUT URL for its source media."""
    cfg = settings(request)
    job_id = str(payload.job_id or uuid4().hex)
    key = source_object_key(payload.user_id, job_id)
    expires_in = max(1, int(cfg.s3_presign_expires_hours) * 3600)
    url = await media_storage(request).get_presigned_upload_url(key, expires_in=expires_in)
    return UploadResponse(job_id=job_id, storage_key=key, upload_url=url, expires_in=expires_in)


@router.post("/file", response_model=UploadResponse)
async def upload_file(
    request: Request,
    user_id: str = Form(..., alias="userId", min_length=1),
    job_id: str | None = Form(default=None, alias="jobId"),
    file: UploadFile = File(...),
) -> UploadResponse:
    cfg = settings(request)
    storage = media_storage(request)
    resolved_job_id = str(job_id or uuid4().hex)
    key = source_object_key(user_id, resolved_job_id)
    max_bytes = int(cfg.upload_max_bytes)

    try:
        with tempfile.TemporaryDirectory() as tmp:
            local_path = Path(tmp) / "original"
            size_bytes = await _write_upload_to_path(file, local_path, max_bytes=max_bytes)
            await storage.upload_file(str(local_path), key)
    finally:
        await file.close()

    return UploadResponse(
        job_id=resolved_job_id,
        storage_key=key,
        size_bytes=size_bytes,
        content_type=_detect_content_type(file.filename, file.content_type),
    )
