"""
Job producers: store new jobs and wake the runner.
"""

from collections.abc import Sequence
from typing import Any

from jobqueue.v1.jobs.models import Job, JobKind
from jobqueue.v1.jobs.repository import JobRepository
from jobqueue.v1.jobs.runner import JobRunner
from jobqueue.v1.jobs.schemas import JobCreate, JobEnqueueResponse


async def enqueue_jobs(
    repository: JobRepository,
    runner: JobRunner | None,
    jobs: Sequence[JobCreate],
    run: bool = True,
) -> JobEnqueueResponse:
    """Persist jobs in one batch, then start the runner if asked to."""
    job_ids = await repository.enqueue([Job.new(job.kind, job.payload) for job in jobs])

    runner_started = False
    if run and runner is not None:
        runner_started = runner.trigger()

    return JobEnqueueResponse(job_ids=job_ids, runner_started=runner_started)


def scheduled_jobs(retention_days: int | None = None) -> list[JobCreate]:
    """Jobs created by the periodic trigger."""
    payload: dict[str, Any] = {}
    if retention_days is not None:
        payload["older_than_days"] = retention_days
    return [JobCreate(kind=JobKind.MAINTENANCE_CLEANUP, payload=payload)]
