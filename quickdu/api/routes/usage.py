from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from quickdu.api.schemas.usage import (
    DirectoryUsageResponse,
    JobCleanupResponse,
    JobUsageResponse,
    RefreshResponse,
    UsageOverviewResponse,
)
from quickdu.registry.service import RegistryUnavailableError, UnknownJobError
from quickdu.usage.service import DiskUsageService, get_usage_service
from quickdu.usage.types import DirectoryUsage, JobUsage

router = APIRouter(prefix="/usage", tags=["usage"])


def _directory_to_response(item: DirectoryUsage) -> DirectoryUsageResponse:
    return DirectoryUsageResponse(
        display_name=item.display_name,
        path=item.path.as_posix(),
        size_kb=item.size_kb,
        size_display=item.size_display,
    )


def _job_to_response(item: JobUsage) -> JobUsageResponse:
    return JobUsageResponse(
        display_name=item.display_name,
        full_name=item.full_name,
        path=item.path.as_posix(),
        size_kb=item.size_kb,
        size_display=item.size_display,
    )


@router.get("", response_model=UsageOverviewResponse)
def get_usage_overview(service: DiskUsageService = Depends(get_usage_service)) -> UsageOverviewResponse:
    snapshot = service.read_snapshot()
    since = service.since_last_run()
    duration = None if snapshot.is_running else (snapshot.last_run_end - snapshot.last_run_start).total_seconds()
    return UsageOverviewResponse(
        running=snapshot.is_running,
        last_run_start=snapshot.last_run_start,
        last_run_end=snapshot.last_run_end,
        since_seconds=max(0.0, since.total_seconds()),
        duration_seconds=duration,
        total_jobs_kb=sum(item.size_kb for item in snapshot.jobs if item.size_kb is not None),
        directories=[_directory_to_response(item) for item in snapshot.directories],
        jobs=[_job_to_response(item) for item in snapshot.jobs],
    )


@router.get("/directories", response_model=list[DirectoryUsageResponse])
def list_directory_usage(service: DiskUsageService = Depends(get_usage_service)) -> list[DirectoryUsageResponse]:
    return [_directory_to_response(item) for item in service.read_directories()]


@router.get("/jobs", response_model=list[JobUsageResponse])
def list_job_usage(service: DiskUsageService = Depends(get_usage_service)) -> list[JobUsageResponse]:
    return [_job_to_response(item) for item in service.read_jobs()]


@router.post("/refresh", response_model=RefreshResponse, status_code=status.HTTP_202_ACCEPTED)
def refresh_usage(service: DiskUsageService = Depends(get_usage_service)) -> RefreshResponse:
    future = service.request_refresh()
    return RefreshResponse(accepted=future is not None, running=service.is_running())


@router.post("/jobs/{full_name}/clean", response_model=JobCleanupResponse, status_code=status.HTTP_202_ACCEPTED)
def clean_job(full_name: str, service: DiskUsageService = Depends(get_usage_service)) -> JobCleanupResponse:
    try:
        service.request_job_cleanup(full_name)
    except UnknownJobError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RegistryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return JobCleanupResponse(full_name=full_name, accepted=True)
