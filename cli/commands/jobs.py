"""Jobs Commands - enqueue, inspect and run jobs"""

import asyncio
import json

import typer
from rich.console import Console
from rich.panel import Panel

from jobqueue.config.logging import setup_logging
from jobqueue.config.settings import RunnerIdleMode, settings
from jobqueue.infra.database import Database
from jobqueue.v1.core.exceptions import StorageError
from jobqueue.v1.jobs.models import JobKind, JobStatus
from jobqueue.v1.jobs.registry_init import build_job_registry
from jobqueue.v1.jobs.repository import SqlAlchemyJobRepository
from jobqueue.v1.jobs.runner import JobRunner, RunSummary

from ..client.endpoints import JobQueueClient, JobQueueError
from ..utils.config_manager import config
from ..utils.formatting import (
    create_job_panel,
    create_jobs_table,
    create_stats_panel,
    create_summary_panel,
    print_error,
    print_info,
    print_success,
    print_warning,
)

console = Console()
app = typer.Typer(name="jobs", help="Job queue commands")


@app.command("enqueue")
def enqueue(
    kind: JobKind = typer.Argument(..., help="Job kind"),
    payload: str = typer.Option("{}", "--payload", "-p", help="JSON payload"),
    count: int = typer.Option(1, "--count", "-n", min=1, help="Number of copies"),
    run: bool | None = typer.Option(
        None, "--run/--no-run", help="Start the runner (default: jobs.run_after_enqueue)"
    ),
):
    """➕ Enqueue jobs of one kind"""
    try:
        payload_data = json.loads(payload)
    except json.JSONDecodeError as e:
        print_error(f"Payload is not valid JSON: {e}")
        raise typer.Exit(1)

    if not isinstance(payload_data, dict):
        print_error("Payload must be a JSON object")
        raise typer.Exit(1)

    jobs = [{"kind": kind.value, "payload": payload_data} for _ in range(count)]
    if run is None:
        run = bool(config.get("jobs.run_after_enqueue", True))

    try:
        with JobQueueClient(config.get("api.base_url")) as client:
            result = client.enqueue(jobs, run=run)
    except JobQueueError as e:
        print_error(f"Failed to enqueue jobs: {e}")
        raise typer.Exit(1)

    ids = ", ".join(str(job_id) for job_id in result.get("job_ids", []))
    print_success(f"Enqueued {len(jobs)} {kind.value} job(s): {ids}")
    if result.get("runner_started"):
        print_info("Runner started")


@app.command("list")
def list_jobs(
    status: JobStatus | None = typer.Option(None, "--status", "-s", help="Filter by status"),
    kind: JobKind | None = typer.Option(None, "--kind", "-k", help="Filter by kind"),
):
    """📋 List jobs"""
    try:
        with JobQueueClient(config.get("api.base_url")) as client:
            data = client.list_jobs(
                status=status.value if status else None,
                kind=kind.value if kind else None,
            )
    except JobQueueError as e:
        print_error(f"Failed to list jobs: {e}")
        raise typer.Exit(1)

    jobs = data.get("jobs", [])
    if not jobs:
        console.print(Panel("📭 [yellow]No jobs found[/yellow]", border_style="yellow"))
        return

    console.print(create_jobs_table(jobs))
    print_info(f"{data.get('total', len(jobs))} job(s)")


@app.command("show")
def show_job(job_id: int = typer.Argument(..., help="Job ID")):
    """🔍 Show one job"""
    try:
        with JobQueueClient(config.get("api.base_url")) as client:
            job = client.get_job(job_id)
    except JobQueueError as e:
        print_error(f"Failed to get job {job_id}: {e}")
        raise typer.Exit(1)

    console.print(create_job_panel(job))


@app.command("stats")
def stats():
    """📊 Show job counts"""
    try:
        with JobQueueClient(config.get("api.base_url")) as client:
            data = client.stats()
    except JobQueueError as e:
        print_error(f"Failed to get stats: {e}")
        raise typer.Exit(1)

    console.print(create_stats_panel(data))


@app.command("run")
def run_remote():
    """▶️ Start the runner of the API server"""
    try:
        with JobQueueClient(config.get("api.base_url")) as client:
            data = client.run_runner()
    except JobQueueError as e:
        print_error(f"Failed to start the runner: {e}")
        raise typer.Exit(1)

    if data.get("runner_started"):
        print_success("Runner started")
    else:
        print_info("Runner is already running")


@app.command("drain")
def drain(
    batch_size: int | None = typer.Option(None, "--batch-size", min=1),
    max_concurrent_jobs: int | None = typer.Option(None, "--max-concurrent-jobs", min=1),
    poll_interval_ms: int | None = typer.Option(None, "--poll-interval-ms", min=0),
):
    """🏃 Run pending jobs in this process until the queue is empty

    Do not use while an API server runs its own runner against the same database.
    """
    try:
        summary = asyncio.run(
            _drain(
                batch_size=batch_size,
                max_concurrent_jobs=max_concurrent_jobs,
                poll_interval_ms=poll_interval_ms,
            )
        )
    except StorageError as e:
        print_error(f"Runner stopped: {e.message}")
        raise typer.Exit(1)

    console.print(create_summary_panel(summary.as_dict()))
    if summary.storage_errors or summary.task_failures:
        print_warning("Some jobs may be left in running status, see the log")


async def _drain(**overrides: int | None) -> RunSummary:
    run_settings = settings.model_copy(
        update={
            "runner_idle_mode": RunnerIdleMode.DRAIN,
            **{key: value for key, value in overrides.items() if value is not None},
        }
    )

    setup_logging(run_settings)
    database = Database(run_settings)
    try:
        if run_settings.is_sqlite:
            await database.create_all()

        repository = SqlAlchemyJobRepository(database.SessionLocal)
        registry = build_job_registry(run_settings, repository)
        runner = JobRunner.from_settings(run_settings, repository, registry)
        return await runner.run()
    finally:
        await database.close()
