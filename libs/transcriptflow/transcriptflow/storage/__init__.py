"""Job store backends."""

from transcriptflow.config import Settings
from transcriptflow.storage.job_store import JobStore
from transcriptflow.storage.memory_store import MemoryJobStore


async def create_job_store(settings: Settings) -> JobStore:
    backend = str(settings.job_store_backend or "postgres").strip().lower()
    if backend == "memory":
        return MemoryJobStore()

    from transcriptflow.repositories import DatabasePool
    from transcriptflow.storage.postgres_store import PostgresJobStore

    pool = await DatabasePool.get_pool(settings)
    return PostgresJobStore(pool, statistics_key=settings.statistics_key)


__all__ = ["JobStore", "MemoryJobStore", "create_job_store"]
