from __future__ import annotations

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from transcriptflow.models.transcript import ResultFragment, Word
from transcriptflow.repositories.base import BaseRepository


class ResultFragmentRepository(BaseRepository):
    def __init__(self, pool: AsyncConnectionPool) -> None:
        super().__init__(pool)

    @staticmethod
    def _from_row(row: dict[str, object]) -> ResultFragment:
        words_raw = row.get("words")
        words = list(words_raw) if isinstance(words_raw, list) else []
        confidence = row.get("confidence")
        return ResultFragment(
            words=[Word.from_dict(w) for w in words if isinstance(w, dict)],
            transcript=str(row.get("transcript") or ""),
            confidence=float(confidence) if isinstance(confidence, (int, float)) else None,
            language_code=str(row["language_code"]) if row.get("language_code") else None,
            start_time_seconds=int(row.get("start_time") or 0),
            id=str(row["id"]),
        )

    async def insert(self, job_id: str, fragment: ResultFragment) -> str:
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO job_results (
                      job_id, start_time, transcript, confidence, language_code, words
                    )
                    VALUES (%s,%s,%s,%s,%s,%s)
                    RETURNING id
                    """,
                    (
                        job_id,
                        int(fragment.start_time_seconds),
                        fragment.transcript,
                        fragment.confidence,
                        fragment.language_code,
                        Jsonb([w.to_dict() for w in fragment.words]),
                    ),
                )
                row = await cur.fetchone()
            await conn.commit()
        return str(row[0]) if row else ""

    async def list_by_job(self, job_id: str) -> list[ResultFragment]:
        async with self.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT id, start_time, transcript, confidence, language_code, words
                    FROM job_results
                    WHERE job_id = %s
                    ORDER BY start_time ASC, id ASC
                    """,
                    (job_id,),
                )
                rows = await cur.fetchall()
        return [self._from_row(r) for r in rows]
