"""TranscriptFlow Worker"""

import asyncio
import logging

from redis.asyncio import Redis

from transcriptflow.config import Settings
from transcriptflow.pipeline import PipelineOrchestrator
from transcriptflow.providers import create_providers
from transcriptflow.storage import create_job_store
from transcriptflow.utils.logging_setup import setup_logging
from handlers.job_handler import consume, make_progress_publisher


async def main():
    """Worker main entry point."""
    settings = Settings()
    setup_logging(settings)
    logger = logging.getLogger("transcriptflow.worker")
    redis = Redis.from_url(settings.redis_url, decode_responses=True)
    store = await create_job_store(settings)
    transcoder, transcriber = create_providers(settings)
    orchestrator = PipelineOrchestrator(
        store,
        transcoder,
        transcriber,
        on_job_update=make_progress_publisher(redis, store),
        progress_min_percent_step=settings.worker.progress_min_percent_step,
        progress_min_interval_s=settings.worker.progress_min_interval_s,
    )

    logger.info(
        "Worker starting (redis=%s, store=%s, concurrency=%d)",
        settings.redis_url,
        settings.job_store_backend,
        settings.worker.concurrency,
    )

    try:
        await consume(
            redis,
            orchestrator,
            concurrency=settings.worker.concurrency,
            poll_timeout_s=settings.worker.poll_timeout_s,
        )
    finally:
        await transcriber.close()
        await transcoder.close()
        await store.close()
        await redis.aclose()


if __name__ == "__main__":
    asyncio.run(main())
