"""
Job API endpoints.

Provides endpoints for enqueueing jobs, inspecting them and driving the runner.
"""

import secrets
from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from jobqueue.config.logging import get_logger
from jobqueue.config.settings import Settings, SettingsDep
from jobqueue.v1.core.exceptions import (
    InvalidTriggerCodeError,
    JobNotFoundError,
    create_success_response,
)
from jobqueue.v1.jobs.models import JobStatus
from jobqueue.v1.jobs.producers import enqueue_jobs, scheduled_jobs
from jobqueue.v1.jobs.repository import SqlAlchemyJobRepository
from jobqueue.v1.jobs.runner import JobRunner
from jobqueue.v1.jobs.schemas import (
    JobEnqueueRequest,
    JobListResponse,
    JobResponse,
    RunnerStatusResponse,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/jobs", tags=["jobs"])


def get_job_repository(request: Request) -> SqlAlchemyJobRepository:
    return request.app.state.job_repository


def get_job_runner(request: Request) -> JobRunner:
    return request.app.state.job_runner


JobRepositoryDep = Depends(get_job_repository)
JobRunnerDep = Depends(get_job_runner)


@router.post("", response_model=dict)
async def enqueue_job(
    job_request: JobEnqueueRequest,
    repository: SqlAlchemyJobRepository = JobRepositoryDep,
    runner: JobRunner = JobRunnerDep,
) -> dict[str, Any]:
    """Enqueue one or more jobs and start the runner."""

    result = await enqueue_jobs(repository, runner, job_request.jobs, run=job_request.run)

    logger.info(
        "Jobs enqueued via API",
        job_ids=result.job_ids,
        runner_started=result.runner_started,
    )

    return create_success_response(data=result.model_dump())


@router.get("", response_model=dict)
async def list_jobs(
    status: JobStatus | None = Query(default=None, description="Filter by status"),
    kind: str | None = Query(default=None, description="Filter by job kind"),
    repository: SqlAlchemyJobRepository = JobRepositoryDep,
) -> dict[str, Any]:
    """List all jobs, oldest first."""

    jobs = await repository.list_all(status=status, kind=kind)

    response_data = JobListResponse(
        jobs=[JobResponse.model_validate(job) for job in jobs],
        total=len(jobs),
    )

    return create_success_response(data=response_data.model_dump(mode="json"))


@router.get("/stats/overview", response_model=dict)
async def get_job_stats(
    repository: SqlAlchemyJobRepository = JobRepositoryDep,
) -> dict[str, Any]:
    """Get job counts by status and kind."""

    stats = await repository.stats()

    return create_success_response(data=stats.model_dump())


@router.get("/runner/status", response_model=dict)
async def get_runner_status(runner: JobRunner = JobRunnerDep) -> dict[str, Any]:
    """Report whether the runner loop is active and how it is configured."""

    status = RunnerStatusResponse(
        running=runner.is_running,
        active_jobs=runner.active_jobs,
        peak_active_jobs=runner.peak_active_jobs,
        max_concurrent_jobs=runner.max_concurrent_jobs,
        batch_size=runner.batch_size,
        poll_interval_ms=runner.poll_interval_ms,
        idle_mode=runner.idle_mode.value,
        registered_kinds=runner.registry.kinds(),
    )

    return create_success_response(data=status.model_dump())


@router.post("/runner/run", response_model=dict)
async def run_jobs(runner: JobRunner = JobRunnerDep) -> dict[str, Any]:
    """Start the runner without enqueueing anything."""

    started = runner.trigger()
    logger.info("Runner triggered via API", runner_started=started)

    return create_success_response(data={"runner_started": started})


@router.post("/trigger/all", response_model=dict)
async def trigger_scheduled_jobs(
    code: str = Query(default="", description="Trigger code"),
    repository: SqlAlchemyJobRepository = JobRepositoryDep,
    runner: JobRunner = JobRunnerDep,
    settings: Settings = SettingsDep,
) -> dict[str, Any]:
    """Enqueue the periodic jobs; meant to be called by an external scheduler."""

    if not code or not secrets.compare_digest(code, settings.trigger_code):
        raise InvalidTriggerCodeError()

    result = await enqueue_jobs(repository, runner, scheduled_jobs())

    logger.info("Scheduled jobs enqueued", job_ids=result.job_ids)

    return create_success_response(data=result.model_dump())


@router.get("/{job_id}", response_model=dict)
async def get_job(
    job_id: int,
    repository: SqlAlchemyJobRepository = JobRepositoryDep,
) -> dict[str, Any]:
    """Get a specific job by ID."""

    job = await repository.get(job_id)

    if not job:
        raise JobNotFoundError(job_id)

    return create_success_response(
        data=JobResponse.model_validate(job).model_dump(mode="json")
    )
