"""Jobs API routes."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from redis.exceptions import RedisError

from transcriptflow.exceptions import JobNotFoundError, PersistenceError
from transcriptflow.services.storage import source_object_key

from routes._deps import job_service, media_storage
from routes.schemas import CreateJobRequest, JobResponse, JobResultsResponse

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("", response_model=JobResponse, status_code=201)
async def create_job(request: Request, payload: CreateJobRequest) -> JobResponse:
    key = source_object_key(payload.user_id, payload.job_id)
    if not await media_storage(request).exists(key):
        raise HTTPException(status_code=409, detail="source media not uploaded")
    service = job_service(request)
    try:
        job = await service.create_job(
            job_id=payload.job_id,
            user_id=payload.user_id,
            metadata=payload.metadata.to_metadata(),
        )
    except PersistenceError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except RedisError as exc:
        raise HTTPException(status_code=503, detail="job queue unavailable") from exc
    return JobResponse.model_validate(job.to_dict())


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(request: Request, job_id: str) -> JobResponse:
    job = await job_service(request).get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="job not found")
    return JobResponse.model_validate(job.to_dict())


@router.get("/{job_id}/results", response_model=JobResultsResponse)
async def get_job_results(request: Request, job_id: str) -> JobResultsResponse:
    try:
        fragments = await job_service(request).list_results(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=404, detail="job not found") from exc
    return JobResultsResponse(job_id=job_id, results=[f.to_dict() for f in fragments])
