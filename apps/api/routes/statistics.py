"""Usage statistics routes."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from routes._deps import job_service
from routes.schemas import StatisticsResponse

router = APIRouter(tags=["statistics"])


@router.get("/statistics", response_model=StatisticsResponse)
async def get_statistics(
    request: Request,
    limit: int = Query(default=20, ge=0, le=500),
) -> StatisticsResponse:
    stats, summaries = await job_service(request).get_statistics(limit=limit)
    return StatisticsResponse(
        duration=stats.duration,
        words=stats.words,
        summaries=[s.to_dict() for s in summaries],
    )
