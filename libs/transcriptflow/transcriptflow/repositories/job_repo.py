from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from transcriptflow.models.error import ErrorRecord
from transcriptflow.models.job import Job, JobStage, RecognitionMetadata
from transcriptflow.repositories.base import BaseRepository

_JOB_COLUMNS = """
    id, user_id, stage, percent, duration, playback_url,
    timestamps, error, metadata, created_at, updated_at
"""


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _as_dict(value: object) -> dict[str, Any]:
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str) and value.strip():
        parsed = json.loads(value)
        return dict(parsed) if isinstance(parsed, dict) else {}
    return {}


def _parse_timestamps(value: object) -> dict[str, datetime]:
    out: dict[str, datetime] = {}
    for key, raw in _as_dict(value).items():
        if isinstance(raw, str) and raw:
            out[str(key)] = datetime.fromisoformat(raw)
    return out


def _stage_values(stages: Iterable[JobStage]) -> list[str]:
    return sorted(s.value for s in stages)


class JobRepository(BaseRepository):
    def __init__(self, pool: AsyncConnectionPool) -> None:
        super().__init__(pool)

    @staticmethod
    def _from_row(row: dict[str, object]) -> Job:
        percent = row.get("percent")
        duration = row.get("duration")
        error = _as_dict(row.get("error"))
        metadata = _as_dict(row.get("metadata"))
        created_at = row.get("created_at")
        updated_at = row.get("updated_at")
        return Job(
            id=str(row["id"]),
            user_id=str(row["user_id"]) if row.get("user_id") is not None else None,
            stage=JobStage(str(row.get("stage") or JobStage.UPLOADING.value)),
            percent=int(percent) if isinstance(percent, int) else None,
            duration=float(duration) if isinstance(duration, (int, float)) else None,
            playback_url=str(row["playback_url"]) if row.get("playback_url") else None,
            timestamps=_parse_timestamps(row.get("timestamps")),
            error=ErrorRecord.from_dict(error) if error else None,
            metadata=RecognitionMetadata.from_dict(metadata) if metadata else None,
            created_at=created_at if isinstance(created_at, datetime) else _utcnow(),
            updated_at=updated_at if isinstance(updated_at, datetime) else _utcnow(),
        )

    async def create(self, job: Job) -> Job:
        timestamps = dict(job.timestamps)
        timestamps.setdefault("createdAt", job.created_at)
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO jobs (
                      id, user_id, stage, percent, duration, playback_url,
                      timestamps, error, metadata, created_at, updated_at
                    )
                    VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        job.id,
                        job.user_id,
                        job.stage.value,
                        job.percent,
                        job.duration,
                        job.playback_url,
                        Jsonb({k: v.isoformat() for k, v in timestamps.items()}),
                        Jsonb(job.error.to_dict()) if job.error is not None else None,
                        Jsonb(job.metadata.to_dict()) if job.metadata is not None else None,
                        job.created_at,
                        job.updated_at,
                    ),
                )
            await conn.commit()
        job.timestamps = timestamps
        return job

    async def get(self, job_id: str) -> Job | None:
        async with self.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"SELECT {_JOB_COLUMNS} FROM jobs WHERE id = %s",
                    (job_id,),
                )
                row = await cur.fetchone()
        if row is None:
            return None
        return self._from_row(row)

    async def get_stage(self, job_id: str) -> JobStage | None:
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT stage FROM jobs WHERE id = %s", (job_id,))
                row = await cur.fetchone()
        if row is None:
            return None
        return JobStage(str(row[0]))

    async def update_stage(
        self,
        job_id: str,
        stage: JobStage,
        *,
        allowed_from: Iterable[JobStage],
        percent: int | None,
        timestamp_key: str | None,
    ) -> bool:
        """Conditional stage write. Returns False when no row matched.

        Existing timestamp keys win over the new one, so a completion time is
        only ever written once.
        """
        now = _utcnow()
        stamp = {timestamp_key: now.isoformat()} if timestamp_key else {}
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE jobs
                    SET stage = %s,
                        percent = %s,
                        timestamps = %s || timestamps,
                        updated_at = %s
                    WHERE id = %s AND stage = ANY(%s)
                    """,
                    (stage.value, percent, Jsonb(stamp), now, job_id, _stage_values(allowed_from)),
                )
                updated = cur.rowcount
            await conn.commit()
        return updated > 0

    async def update_percent(self, job_id: str, percent: int, *, stages: Iterable[JobStage]) -> bool:
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE jobs SET percent = %s, updated_at = %s
                    WHERE id = %s AND stage = ANY(%s)
                    """,
                    (int(percent), _utcnow(), job_id, _stage_values(stages)),
                )
                updated = cur.rowcount
            await conn.commit()
        return updated > 0

    async def update_duration(self, job_id: str, seconds: float) -> bool:
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "UPDATE jobs SET duration = %s, updated_at = %s WHERE id = %s",
                    (float(seconds), _utcnow(), job_id),
                )
                updated = cur.rowcount
            await conn.commit()
        return updated > 0

    async def update_playback_url(self, job_id: str, url: str) -> bool:
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "UPDATE jobs SET playback_url = %s, updated_at = %s WHERE id = %s",
                    (str(url), _utcnow(), job_id),
                )
                updated = cur.rowcount
            await conn.commit()
        return updated > 0

    async def mark_failed(
        self,
        job_id: str,
        error: ErrorRecord,
        *,
        allowed_from: Iterable[JobStage],
        timestamp_key: str,
    ) -> bool:
        now = _utcnow()
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    UPDATE jobs
                    SET stage = %s,
                        percent = NULL,
                        error = %s,
                        timestamps = %s || timestamps,
                        updated_at = %s
                    WHERE id = %s AND stage = ANY(%s)
                    """,
                    (
                        JobStage.FAILED.value,
                        Jsonb(error.to_dict()),
                        Jsonb({timestamp_key: now.isoformat()}),
                        now,
                        job_id,
                        _stage_values(allowed_from),
                    ),
                )
                updated = cur.rowcount
            await conn.commit()
        return updated > 0
