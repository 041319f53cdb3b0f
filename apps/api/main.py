"""TranscriptFlow API"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from redis.asyncio import Redis

from transcriptflow.config import Settings
from transcriptflow.services.storage import get_media_storage
from transcriptflow.storage import create_job_store
from routes.health import router as health_router
from routes.jobs import router as jobs_router
from routes.statistics import router as statistics_router
from routes.uploads import router as uploads_router
from transcriptflow.utils.logging_setup import setup_logging

settings = Settings()
setup_logging(settings)
logger = logging.getLogger("transcriptflow.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.redis = Redis.from_url(settings.redis_url, decode_responses=True)
    app.state.settings = settings
    app.state.job_store = await create_job_store(settings)
    app.state.media_storage = get_media_storage(settings)
    logger.info(
        "API starting (redis=%s, store=%s)", settings.redis_url, settings.job_store_backend
    )
    try:
        yield
    finally:
        redis: Redis | None = getattr(app.state, "redis", None)
        if redis is not None:
            await redis.aclose()
        await app.state.job_store.close()


app = FastAPI(
    title="TranscriptFlow API",
    description="Audio transcription job API",
    version="0.1.0",
    lifespan=lifespan,
)


app.include_router(jobs_router)
app.include_router(statistics_router)
app.include_router(uploads_router)
app.include_router(health_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
