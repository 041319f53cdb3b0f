"""Rate-limited percent reporting into the job store."""

from __future__ import annotations

import asyncio
import time

from transcriptflow.pipeline.context import JobUpdateHook, ProgressReporter
from transcriptflow.storage.job_store import JobStore


class JobProgressReporter(ProgressReporter):
    """Writes the current stage's percent, at most every `min_percent_step` or `min_interval_s`.

    Percent never goes backwards within one reporter; 100 is always written.
    One reporter is created per stage.
    """

    def __init__(
        self,
        *,
        store: JobStore,
        job_id: str,
        notify_update: JobUpdateHook | None = None,
        min_percent_step: int = 5,
        min_interval_s: float = 2.0,
    ) -> None:
        self._store = store
        self._job_id = job_id
        self._notify_update = notify_update
        self._min_percent_step = max(1, int(min_percent_step))
        self._min_interval_s = max(0.0, float(min_interval_s))
        self._lock = asyncio.Lock()
        self._last_progress = 0
        self._last_update_at = 0.0
        self.last_message: str | None = None

    @property
    def last_progress(self) -> int:
        return self._last_progress

    async def report(self, progress: int, message: str) -> None:
        pct = max(0, min(100, int(progress)))
        msg = str(message or "").strip() or "running"

        now = time.monotonic()
        async with self._lock:
            if pct < self._last_progress:
                pct = self._last_progress

            should_emit = False
            if pct >= 100 and self._last_progress < 100:
                should_emit = True
            elif pct >= self._last_progress + self._min_percent_step:
                should_emit = True
            elif (
                pct > self._last_progress
                and self._min_interval_s > 0
                and now - self._last_update_at >= self._min_interval_s
            ):
                should_emit = True

            if not should_emit:
                return

            await self._store.set_percent(self._job_id, pct)
            self._last_progress = pct
            self._last_update_at = now
            self.last_message = msg
            if self._notify_update is not None:
                await self._notify_update(self._job_id)
