"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.schemas import AlertStateResponse, CycleRecord, SeriesPoint
from services.pipeline import AlertPipeline, build_default_pipeline

router = APIRouter()


def get_pipeline() -> AlertPipeline:
    return build_default_pipeline()


@router.post(
    "/cycles",
    response_model=CycleRecord,
    summary="Run one fetch-classify-alert cycle.",
)
def run_cycle(
    pipeline: AlertPipeline = Depends(get_pipeline),
) -> CycleRecord:
    # Sync so the blocking cycle runs in the threadpool.
    return pipeline.run_cycle()


@router.get(
    "/cycles",
    response_model=list[CycleRecord],
    summary="List recorded cycles, newest first.",
)
def list_cycles(
    limit: int = Query(50, ge=1, le=1000),
    pipeline: AlertPipeline = Depends(get_pipeline),
) -> list[CycleRecord]:
    if pipeline.cycle_log is None:
        return []
    records = pipeline.cycle_log.scan()
    return list(reversed(records))[:limit]


@router.get(
    "/state",
    response_model=AlertStateResponse,
    summary="Current alert state for the monitored location.",
)
async def get_state(
    pipeline: AlertPipeline = Depends(get_pipeline),
) -> AlertStateResponse:
    return AlertStateResponse.from_state(pipeline.state)


@router.get(
    "/series",
    response_model=list[SeriesPoint],
    summary="Daily AQI series for charting.",
)
async def get_series(
    days: Optional[int] = Query(None, ge=1),
    pipeline: AlertPipeline = Depends(get_pipeline),
) -> list[SeriesPoint]:
    if pipeline.cycle_log is None:
        return []
    return pipeline.cycle_log.series(days)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
