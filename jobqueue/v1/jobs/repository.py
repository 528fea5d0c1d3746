"""
Job persistence contract and its SQLAlchemy implementation.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, Protocol

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobqueue.config.logging import get_logger
from jobqueue.v1.core.exceptions import StorageError
from jobqueue.v1.jobs.models import Job, JobStatus, utc_now
from jobqueue.v1.jobs.schemas import JobStatsResponse

logger = get_logger(__name__)


class JobRepository(Protocol):
    """
    Persistence operations needed by the runner.

    Every operation raises ``StorageError`` when the underlying store fails.
    """

    async def enqueue(self, jobs: Sequence[Job]) -> list[int]:
        """Persist new jobs as one batch in pending status and return their ids."""
        ...

    async def fetch_pending(self, limit: int) -> list[Job]:
        """Return up to ``limit`` pending jobs, oldest first. Does not claim them."""
        ...

    async def mark_running(self, job_id: int) -> None: ...

    async def mark_done(self, job_id: int, output: dict[str, Any] | None) -> None: ...

    async def mark_error(self, job_id: int, message: str | None) -> None: ...

    async def list_all(self) -> list[Job]:
        """Full snapshot of all jobs."""
        ...


class SqlAlchemyJobRepository:
    """
    Job repository over an async SQLAlchemy session factory.

    Each call opens its own session, so one instance can be shared by all
    concurrently running job tasks.

    fetch_pending reads pending rows without claiming them. Two runners
    polling the same table would both see the same jobs, so at most one
    runner may be active against a given database at any time.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("Job repository call failed", operation=operation, error=str(e))
            raise StorageError(
                f"{operation} failed: {e}", details={"operation": operation}
            ) from e

    async def enqueue(self, jobs: Sequence[Job]) -> list[int]:
        if not jobs:
            return []

        now = utc_now()
        for job in jobs:
            job.id = None
            job.status = JobStatus.PENDING.value
            job.output = None
            job.error_message = None
            job.created_at = job.created_at or now
            job.updated_at = now

        async with self._session("enqueue") as session:
            session.add_all(jobs)
            await session.commit()

        job_ids = [job.id for job in jobs]
        logger.info(
            "Jobs enqueued",
            job_count=len(job_ids),
            job_ids=job_ids,
            kinds=sorted({job.kind for job in jobs}),
        )
        return job_ids

    async def fetch_pending(self, limit: int) -> list[Job]:
        async with self._session("fetch_pending") as session:
            result = await session.execute(
                select(Job)
                .where(Job.status == JobStatus.PENDING.value)
                .order_by(Job.created_at, Job.id)
                .limit(limit)
            )
            return list(result.scalars().all())

    async def mark_running(self, job_id: int) -> None:
        await self._set_status("mark_running", job_id, JobStatus.RUNNING)

    async def mark_done(self, job_id: int, output: dict[str, Any] | None) -> None:
        await self._set_status(
            "mark_done", job_id, JobStatus.DONE, output=output, error_message=None
        )

    async def mark_error(self, job_id: int, message: str | None) -> None:
        await self._set_status(
            "mark_error", job_id, JobStatus.ERROR, error_message=message
        )

    async def _set_status(
        self, operation: str, job_id: int, status: JobStatus, **values: Any
    ) -> None:
        async with self._session(operation) as session:
            await session.execute(
                update(Job)
                .where(Job.id == job_id)
                .values(status=status.value, updated_at=utc_now(), **values)
            )
            await session.commit()

    async def list_all(
        self, status: JobStatus | None = None, kind: str | None = None
    ) -> list[Job]:
        query = select(Job)
        if status is not None:
            query = query.where(Job.status == JobStatus(status).value)
        if kind is not None:
            query = query.where(Job.kind == kind)

        async with self._session("list_all") as session:
            result = await session.execute(query.order_by(Job.id))
            return list(result.scalars().all())

    async def get(self, job_id: int) -> Job | None:
        async with self._session("get") as session:
            return await session.get(Job, job_id)

    async def stats(self) -> JobStatsResponse:
        async with self._session("stats") as session:
            status_result = await session.execute(
                select(Job.status, func.count(Job.id)).group_by(Job.status)
            )
            by_status = dict(status_result.all())

            kind_result = await session.execute(
                select(Job.kind, func.count(Job.id)).group_by(Job.kind)
            )
            by_kind = dict(kind_result.all())

        queue_depth = by_status.get(JobStatus.PENDING.value, 0) + by_status.get(
            JobStatus.RUNNING.value, 0
        )

        return JobStatsResponse(
            total_jobs=sum(by_status.values()),
            by_status=by_status,
            by_kind=by_kind,
            queue_depth=queue_depth,
        )

    async def delete_older_than(self, days: int, dry_run: bool = False) -> int:
        """Delete finished jobs not updated for ``days`` days; return how many."""
        cutoff = utc_now() - timedelta(days=days)
        condition = (
            Job.status.in_([JobStatus.DONE.value, JobStatus.ERROR.value]),
            Job.updated_at < cutoff,
        )

        async with self._session("delete_older_than") as session:
            if dry_run:
                result = await session.execute(
                    select(func.count(Job.id)).where(*condition)
                )
                return result.scalar() or 0

            result = await session.execute(delete(Job).where(*condition))
            await session.commit()

        deleted_count = result.rowcount or 0
        if deleted_count > 0:
            logger.info(
                "Cleaned up old jobs", deleted_count=deleted_count, retention_days=days
            )
        return deleted_count
