"""PostgreSQL repository layer."""

from transcriptflow.repositories.base import BaseRepository, DatabasePool
from transcriptflow.repositories.job_repo import JobRepository
from transcriptflow.repositories.result_fragment_repo import ResultFragmentRepository
from transcriptflow.repositories.usage_statistics_repo import UsageStatisticsRepository

__all__ = [
    "BaseRepository",
    "DatabasePool",
    "JobRepository",
    "ResultFragmentRepository",
    "UsageStatisticsRepository",
]
