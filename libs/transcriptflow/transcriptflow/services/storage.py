"""Media object storage (MinIO/S3 or local filesystem)."""

from __future__ import annotations

import asyncio
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from transcriptflow.config import Settings


def source_object_key(user_id: str, job_id: str) -> str:
    """Location of the uploaded original."""
    return f"media/{user_id}/{job_id}/original"


def normalized_object_key(user_id: str, job_id: str) -> str:
    return f"media/{user_id}/{job_id}/normalized.wav"


def playback_object_key(user_id: str, job_id: str, fmt: str) -> str:
    return f"media/{user_id}/{job_id}/playback.{fmt.lstrip('.')}"


class MediaStorage(ABC):
    @abstractmethod
    async def upload_file(self, local_path: str, remote_key: str) -> str:
        """Upload a file and return its storage URI."""

    @abstractmethod
    async def download_file(self, remote_key: str, local_path: str) -> str: ...

    @abstractmethod
    async def exists(self, remote_key: str) -> bool: ...

    @abstractmethod
    async def get_presigned_url(self, remote_key: str, expires_in: int = 3600) -> str: ...

    @abstractmethod
    async def get_presigned_upload_url(self, remote_key: str, expires_in: int = 3600) -> str: ...

    @abstractmethod
    def object_uri(self, remote_key: str) -> str:
        """URI handed to the recognition backend."""


class StorageService(MediaStorage):
    def __init__(self, endpoint: str, access_key: str, secret_key: str, bucket: str) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.access_key = access_key
        self.secret_key = secret_key
        self.bucket = bucket
        self._client: Any | None = None

    def _ensure_client(self) -> Any:
        if self._client is not None:
            return self._client
        import boto3

        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
        )
        return self._client

    def object_uri(self, remote_key: str) -> str:
        return f"s3://{self.bucket}/{remote_key.lstrip('/')}"

    async def upload_file(self, local_path: str, remote_key: str) -> str:
        client = self._ensure_client()
        remote_key = remote_key.lstrip("/")
        await asyncio.to_thread(client.upload_file, local_path, self.bucket, remote_key)
        return self.object_uri(remote_key)

    async def download_file(self, remote_key: str, local_path: str) -> str:
        client = self._ensure_client()
        remote_key = remote_key.lstrip("/")
        Path(local_path).parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(client.download_file, self.bucket, remote_key, local_path)
        return local_path

    async def exists(self, remote_key: str) -> bool:
        from botocore.exceptions import ClientError

        client = self._ensure_client()
        remote_key = remote_key.lstrip("/")
        try:
            await asyncio.to_thread(client.head_object, Bucket=self.bucket, Key=remote_key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code") or "")
            if code in {"404", "NoSuchKey", "NotFound"}:
                return False
            raise
        return True

    async def _presign(self, method: str, remote_key: str, expires_in: int) -> str:
        client = self._ensure_client()
        remote_key = remote_key.lstrip("/")

        def _gen() -> str:
            return str(
                client.generate_presigned_url(
                    method,
                    Params={"Bucket": self.bucket, "Key": remote_key},
                    ExpiresIn=expires_in,
                )
            )

        return await asyncio.to_thread(_gen)

    async def get_presigned_url(self, remote_key: str, expires_in: int = 3600) -> str:
        return await self._presign("get_object", remote_key, expires_in)

    async def get_presigned_upload_url(self, remote_key: str, expires_in: int = 3600) -> str:
        return await self._presign("put_object", remote_key, expires_in)


class LocalStorageService(MediaStorage):
    """Filesystem media storage for development and tests."""

    def __init__(self, base_dir: str) -> None:
        self.base_dir = Path(base_dir)

    def _path(self, remote_key: str) -> Path:
        parts = [p for p in remote_key.strip("/").split("/") if p not in {"", ".", ".."}]
        return self.base_dir.joinpath(*parts)

    def object_uri(self, remote_key: str) -> str:
        return self._path(remote_key).resolve().as_uri()

    async def upload_file(self, local_path: str, remote_key: str) -> str:
        dest = self._path(remote_key)
        dest.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, local_path, dest)
        return self.object_uri(remote_key)

    async def download_file(self, remote_key: str, local_path: str) -> str:
        src = self._path(remote_key)
        if not src.is_file():
            raise FileNotFoundError(str(src))
        Path(local_path).parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, src, local_path)
        return local_path

    async def exists(self, remote_key: str) -> bool:
        return self._path(remote_key).is_file()

    async def get_presigned_url(self, remote_key: str, expires_in: int = 3600) -> str:
        return self.object_uri(remote_key)

    async def get_presigned_upload_url(self, remote_key: str, expires_in: int = 3600) -> str:
        return self.object_uri(remote_key)


def get_media_storage(settings: Settings) -> MediaStorage:
    backend = str(settings.media_storage_backend or "s3").strip().lower()
    if backend == "local":
        return LocalStorageService(str(Path(settings.data_dir) / "media_store"))
    return StorageService(
        endpoint=settings.s3_endpoint,
        access_key=settings.s3_access_key,
        secret_key=settings.s3_secret_key,
        bucket=settings.s3_bucket_name,
    )
