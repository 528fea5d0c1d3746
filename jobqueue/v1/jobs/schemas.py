"""
Job system Pydantic schemas.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from jobqueue.v1.jobs.models import JobKind, JobStatus


class HandlerResult(BaseModel):
    """Outcome reported by a handler; decides the job's terminal status."""

    success: bool
    output: dict[str, Any] | None = None
    error: str | None = None

    @classmethod
    def ok(cls, output: dict[str, Any] | None = None) -> "HandlerResult":
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, error: str) -> "HandlerResult":
        return cls(success=False, error=error)


class JobCreate(BaseModel):
    """Schema for creating a new job."""

    kind: JobKind = Field(..., description="Job kind")
    payload: dict[str, Any] = Field(default_factory=dict, description="Job parameters")


class JobEnqueueRequest(BaseModel):
    """Schema for enqueueing jobs via API."""

    jobs: list[JobCreate] = Field(..., min_length=1, description="Jobs to enqueue")
    run: bool = Field(
        default=True, description="Start the runner after the jobs are stored"
    )


class JobEnqueueResponse(BaseModel):
    """Schema for job enqueue response."""

    job_ids: list[int]
    runner_started: bool = Field(
        default=False, description="Whether this request started the runner loop"
    )


class JobResponse(BaseModel):
    """Schema for job API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    status: JobStatus
    payload: dict[str, Any]
    output: dict[str, Any] | None = None
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime


class JobListResponse(BaseModel):
    """Schema for job list API response."""

    jobs: list[JobResponse]
    total: int


class JobStatsResponse(BaseModel):
    """Schema for job statistics."""

    total_jobs: int
    by_status: dict[str, int]
    by_kind: dict[str, int]
    queue_depth: int  # pending + running


class RunnerStatusResponse(BaseModel):
    """Schema for runner status."""

    running: bool
    active_jobs: int
    peak_active_jobs: int
    max_concurrent_jobs: int
    batch_size: int
    poll_interval_ms: int
    idle_mode: str
    registered_kinds: list[str]
