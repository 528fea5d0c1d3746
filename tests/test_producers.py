import asyncio

from jobqueue.v1.jobs.models import JobKind, JobStatus
from jobqueue.v1.jobs.producers import enqueue_jobs, scheduled_jobs
from jobqueue.v1.jobs.runner import JobRunner
from jobqueue.v1.jobs.schemas import JobCreate

from fakes import EchoHandler


async def test_enqueue_without_runner(repository):
    result = await enqueue_jobs(
        repository, None, [JobCreate(kind=JobKind.FETCH_JSON, payload={"a": 1})]
    )

    assert result.runner_started is False
    [job] = await repository.list_all()
    assert job.id == result.job_ids[0]
    assert job.status == JobStatus.PENDING.value


async def test_enqueue_triggers_runner(repository, registry):
    registry.register_handlers([EchoHandler()])
    runner = JobRunner(repository, registry, poll_interval_ms=0)

    result = await enqueue_jobs(
        repository, runner, [JobCreate(kind=JobKind.FETCH_JSON) for _ in range(3)]
    )

    assert result.runner_started is True
    await asyncio.wait_for(runner.wait(), timeout=5)
    jobs = await repository.list_all()
    assert [job.status for job in jobs] == [JobStatus.DONE.value] * 3


async def test_enqueue_with_run_disabled(repository, registry):
    runner = JobRunner(repository, registry, poll_interval_ms=0)

    result = await enqueue_jobs(
        repository, runner, [JobCreate(kind=JobKind.FETCH_JSON)], run=False
    )

    assert result.runner_started is False
    assert not runner.is_running


def test_scheduled_jobs():
    [job] = scheduled_jobs()
    assert job.kind is JobKind.MAINTENANCE_CLEANUP
    assert job.payload == {}

    [job] = scheduled_jobs(retention_days=7)
    assert job.payload == {"older_than_days": 7}
