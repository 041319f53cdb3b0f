from __future__ import annotations

import uuid
from datetime import datetime, timezone

from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from transcriptflow.models.statistics import TranscriptSummary, UsageStatistics
from transcriptflow.repositories.base import BaseRepository


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class UsageStatisticsRepository(BaseRepository):
    def __init__(self, pool: AsyncConnectionPool, *, key: str) -> None:
        super().__init__(pool)
        self.key = str(key)

    async def record(self, summary: TranscriptSummary) -> UsageStatistics:
        """Add one summary to the aggregate row and store the summary, in one transaction.

        The aggregate row is locked for the read-modify-write so concurrent
        writers serialize instead of losing updates.
        """
        summary_id = uuid.uuid4().hex
        async with self.connection() as conn:
            async with conn.transaction():
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        """
                        INSERT INTO usage_statistics (key, duration, words, updated_at)
                        VALUES (%s, 0, 0, %s)
                        ON CONFLICT (key) DO NOTHING
                        """,
                        (self.key, _utcnow()),
                    )
                    await cur.execute(
                        "SELECT duration, words FROM usage_statistics WHERE key = %s FOR UPDATE",
                        (self.key,),
                    )
                    row = await cur.fetchone() or {}
                    current = UsageStatistics(
                        duration=float(row.get("duration") or 0.0),
                        words=int(row.get("words") or 0),
                    )
                    updated = current.add(summary)
                    await cur.execute(
                        """
                        UPDATE usage_statistics
                        SET duration = %s, words = %s, updated_at = %s
                        WHERE key = %s
                        """,
                        (updated.duration, updated.words, _utcnow(), self.key),
                    )
                    await cur.execute(
                        """
                        INSERT INTO usage_summaries (
                          id, statistics_key, job_id, duration, words, created_at
                        )
                        VALUES (%s,%s,%s,%s,%s,%s)
                        """,
                        (
                            summary_id,
                            self.key,
                            summary.job_id,
                            float(summary.duration),
                            int(summary.words),
                            summary.created_at,
                        ),
                    )
        summary.id = summary_id
        return updated

    async def get(self) -> UsageStatistics:
        async with self.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    "SELECT duration, words FROM usage_statistics WHERE key = %s",
                    (self.key,),
                )
                row = await cur.fetchone()
        if row is None:
            return UsageStatistics()
        return UsageStatistics(duration=float(row["duration"] or 0.0), words=int(row["words"] or 0))

    async def list_summaries(self, *, limit: int = 100) -> list[TranscriptSummary]:
        async with self.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT id, job_id, duration, words, created_at
                    FROM usage_summaries
                    WHERE statistics_key = %s
                    ORDER BY created_at DESC
                    LIMIT %s
                    """,
                    (self.key, max(0, int(limit))),
                )
                rows = await cur.fetchall()
        return [
            TranscriptSummary(
                job_id=str(r["job_id"]),
                duration=float(r["duration"] or 0.0),
                words=int(r["words"] or 0),
                created_at=r["created_at"] if isinstance(r.get("created_at"), datetime) else _utcnow(),
                id=str(r["id"]),
            )
            for r in rows
        ]
