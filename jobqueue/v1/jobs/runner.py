"""
Polling job runner with bounded concurrency.
"""

import asyncio
import contextvars
from dataclasses import asdict, dataclass

from jobqueue.config.logging import get_logger, job_log_context
from jobqueue.config.settings import RunnerIdleMode, Settings
from jobqueue.v1.core.exceptions import (
    ExecutionError,
    HandlerError,
    InfrastructureError,
    StorageError,
)
from jobqueue.v1.core.registries import JobHandlerRegistry
from jobqueue.v1.jobs.models import Job, JobStatus
from jobqueue.v1.jobs.repository import JobRepository
from jobqueue.v1.jobs.schemas import HandlerResult

logger = get_logger(__name__)


def _cancelling() -> bool:
    """Whether the calling task itself has a pending cancellation request."""
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


@dataclass
class RunSummary:
    """Counters for one invocation of ``JobRunner.run``."""

    batches: int = 0
    processed: int = 0
    done: int = 0
    failed: int = 0
    storage_errors: int = 0
    task_failures: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class JobRunner:
    """
    Fetches pending jobs in batches and executes them concurrently.

    Each loop iteration waits ``poll_interval_ms``, fetches up to
    ``batch_size`` pending jobs, starts one task per job once a permit is
    free (at most ``max_concurrent_jobs`` tasks at a time), and waits for the
    whole batch before fetching again. In drain mode the loop returns on the
    first empty fetch; in forever mode it keeps polling until cancelled.

    Failures stay at the job boundary: a failing job is recorded in error
    status and never aborts the batch. Only a failing repository call made by
    the loop itself ends ``run`` with an exception.

    Precondition: a single runner per repository. Use ``trigger`` to start
    the loop from producers; it never starts a second loop in the process.
    """

    def __init__(
        self,
        repository: JobRepository,
        registry: JobHandlerRegistry,
        max_concurrent_jobs: int = 4,
        poll_interval_ms: int = 3000,
        batch_size: int = 4,
        idle_mode: RunnerIdleMode = RunnerIdleMode.DRAIN,
        job_timeout_s: float | None = None,
    ):
        if max_concurrent_jobs < 1:
            raise ValueError("max_concurrent_jobs must be at least 1")
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if poll_interval_ms < 0:
            raise ValueError("poll_interval_ms must not be negative")

        self.repository = repository
        self.registry = registry
        self.max_concurrent_jobs = max_concurrent_jobs
        self.poll_interval_ms = poll_interval_ms
        self.batch_size = batch_size
        self.idle_mode = RunnerIdleMode(idle_mode)
        self.job_timeout_s = job_timeout_s

        self._limiter = asyncio.Semaphore(max_concurrent_jobs)
        self._task: asyncio.Task | None = None
        self._rerun_requested = False
        self.last_summary: RunSummary | None = None

        self.active_jobs = 0
        self.peak_active_jobs = 0

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        repository: JobRepository,
        registry: JobHandlerRegistry,
    ) -> "JobRunner":
        return cls(
            repository,
            registry,
            max_concurrent_jobs=settings.max_concurrent_jobs,
            poll_interval_ms=settings.poll_interval_ms,
            batch_size=settings.batch_size,
            idle_mode=settings.runner_idle_mode,
            job_timeout_s=settings.job_timeout_s,
        )

    async def run(self) -> RunSummary:
        """Run the polling loop until a fetch comes back empty (drain mode)."""
        summary = RunSummary()
        logger.info(
            "Job runner started",
            max_concurrent_jobs=self.max_concurrent_jobs,
            batch_size=self.batch_size,
            poll_interval_ms=self.poll_interval_ms,
            idle_mode=self.idle_mode.value,
        )

        while True:
            await asyncio.sleep(self.poll_interval_ms / 1000)

            pending_jobs = await self.repository.fetch_pending(self.batch_size)
            if not pending_jobs:
                if self.idle_mode is RunnerIdleMode.FOREVER:
                    continue
                logger.info("No pending jobs, job runner stopping", **summary.as_dict())
                self.last_summary = summary
                return summary

            summary.batches += 1
            logger.debug(
                "Fetched job batch",
                job_count=len(pending_jobs),
                job_ids=[job.id for job in pending_jobs],
            )

            tasks = []
            try:
                for job in pending_jobs:
                    await self._limiter.acquire()
                    task = asyncio.create_task(
                        self.process_job(job), name=f"job-{job.id}"
                    )
                    # Released on completion even if the task never got to start
                    task.add_done_callback(self._release_permit)
                    tasks.append(task)

                outcomes = await asyncio.gather(*tasks, return_exceptions=True)
            except asyncio.CancelledError:
                await self._cancel_tasks(tasks)
                raise

            for job, outcome in zip(pending_jobs, outcomes):
                await self._reconcile(job, outcome, summary)

    def _release_permit(self, _task: asyncio.Task) -> None:
        self._limiter.release()

    @staticmethod
    async def _cancel_tasks(tasks: list[asyncio.Task]) -> None:
        """Cancel the batch's job tasks and wait until every one has finished."""
        for task in tasks:
            task.cancel()
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        for task, outcome in zip(tasks, outcomes):
            if not isinstance(outcome, (asyncio.CancelledError, JobStatus)):
                logger.warning(
                    "Job task failed during shutdown",
                    task=task.get_name(),
                    error=f"{type(outcome).__name__}: {outcome}",
                )

    async def _reconcile(
        self, job: Job, outcome: JobStatus | BaseException, summary: RunSummary
    ) -> None:
        summary.processed += 1

        if isinstance(outcome, JobStatus):
            if outcome is JobStatus.DONE:
                summary.done += 1
            else:
                summary.failed += 1
        elif isinstance(outcome, ExecutionError):
            logger.warning(
                "Job execution failed", job_id=outcome.job_id, error=outcome.message
            )
            await self.repository.mark_error(outcome.job_id, outcome.message)
            summary.failed += 1
        elif isinstance(outcome, StorageError):
            # Status stays at whatever was last written for this job
            logger.error("Job storage error", job_id=job.id, error=outcome.message)
            summary.storage_errors += 1
        else:
            error = InfrastructureError(
                f"Job task did not complete: {type(outcome).__name__}: {outcome}"
            )
            logger.error("Job task failure", job_id=job.id, error=str(error))
            summary.task_failures += 1

    async def process_job(self, job: Job) -> JobStatus:
        """
        Execute one job and record its terminal status.

        Raises:
            ExecutionError: no handler serves the job's kind, the handler timed
                out or returned something that is not a HandlerResult
            StorageError: a repository call failed
        """
        self.active_jobs += 1
        self.peak_active_jobs = max(self.peak_active_jobs, self.active_jobs)
        try:
            with job_log_context(job.id, job.kind):
                return await self._execute(job)
        finally:
            self.active_jobs -= 1

    async def _execute(self, job: Job) -> JobStatus:
        await self.repository.mark_running(job.id)

        handler = self.registry.get_handler(job.kind)
        if handler is None:
            raise ExecutionError(
                job.id, f"No handler for job kind: {job.kind} (job {job.id})"
            )

        logger.debug("Processing job started")
        deadline = asyncio.timeout(self.job_timeout_s)
        try:
            async with deadline:
                result = await handler.handle(job)
        except HandlerError as e:
            message = str(e) or type(e).__name__
            logger.error("Job handler error", error=message)
            await self.repository.mark_error(job.id, message)
            return JobStatus.ERROR
        except TimeoutError as e:
            if not deadline.expired():
                raise ExecutionError(job.id, f"{type(e).__name__}: {e}") from e
            raise ExecutionError(
                job.id, f"Job timed out after {self.job_timeout_s}s"
            ) from e
        except StorageError:
            raise
        except Exception as e:
            logger.exception("Job handler raised unexpectedly")
            raise ExecutionError(job.id, f"{type(e).__name__}: {e}") from e

        if not isinstance(result, HandlerResult):
            raise ExecutionError(
                job.id,
                f"Handler for {job.kind} returned {type(result).__name__}, "
                "expected HandlerResult",
            )

        if result.success:
            await self.repository.mark_done(job.id, result.output)
            logger.info("Job done")
            return JobStatus.DONE

        await self.repository.mark_error(job.id, result.error)
        logger.info("Job failed", error=result.error)
        return JobStatus.ERROR

    # Background loop management

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self) -> bool:
        """
        Start ``run`` in the background unless it is already running.

        Returns True when a new loop was started. When a loop is already
        active, another pass is scheduled for when it finishes so that jobs
        enqueued during its last fetch are not left waiting.
        """
        if self.is_running:
            self._rerun_requested = True
            return False

        self._rerun_requested = False
        # Fresh context: the loop must not inherit the triggering request's log fields
        self._task = asyncio.create_task(
            self.run(), name="job-runner", context=contextvars.Context()
        )
        self._task.add_done_callback(self._on_run_finished)
        return True

    def _on_run_finished(self, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.info("Job runner cancelled")
            return

        error = task.exception()
        if error is not None:
            logger.error(
                "Job runner stopped with error",
                exception=type(error).__name__,
                error=str(error),
            )
            return

        if self._rerun_requested:
            self.trigger()

    async def wait(self) -> RunSummary | None:
        """Wait for the background loop, if any, and return its summary."""
        while self._task is not None:
            task = self._task
            try:
                # Shielded so that cancelling the caller leaves the loop running
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled() or _cancelling():
                    raise
            except StorageError:
                pass
            if task is self._task:
                break
        return self.last_summary

    async def stop(self) -> None:
        """Cancel the background loop. Running jobs are cancelled with it."""
        self._rerun_requested = False
        if not self.is_running:
            return

        logger.info("Stopping job runner")
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            if _cancelling():
                raise
