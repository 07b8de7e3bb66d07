from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class DirectoryUsageResponse(BaseModel):
    display_name: str
    path: str
    size_kb: int | None
    size_display: str


class JobUsageResponse(BaseModel):
    display_name: str
    full_name: str
    path: str
    size_kb: int | None
    size_display: str


class UsageOverviewResponse(BaseModel):
    running: bool
    last_run_start: datetime
    last_run_end: datetime
    since_seconds: float
    duration_seconds: float | None
    total_jobs_kb: int
    directories: list[DirectoryUsageResponse]
    jobs: list[JobUsageResponse]


class RefreshResponse(BaseModel):
    accepted: bool
    running: bool


class JobCleanupResponse(BaseModel):
    full_name: str
    accepted: bool
