from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from jobqueue.config.logging import get_logger
from jobqueue.config.settings import Settings, SettingsDep
from jobqueue.infra.database import Database, get_database
from jobqueue.v1.core.exceptions import StorageError, create_success_response
from jobqueue.v1.jobs.models import JobStatus

logger = get_logger(__name__)
router = APIRouter()


class DatabaseHealth(BaseModel):
    """Database health status."""

    connected: bool
    response_time_ms: float | None = None
    error: str | None = None


class RunnerHealth(BaseModel):
    """Job runner health status."""

    running: bool
    active_jobs: int = 0
    pending_jobs: int = 0
    running_jobs: int = 0


class HealthResponse(BaseModel):
    """Health response with database and runner status."""

    ok: bool
    version: str
    environment: str
    timestamp: str
    database: DatabaseHealth
    runner: RunnerHealth | None = None


@router.get("/healthz", response_model=dict)
async def health_check(
    request: Request,
    settings: Settings = SettingsDep,
    database: Database = Depends(get_database),
):
    """Report database connectivity, runner state and queue depth."""

    try:
        db_health = DatabaseHealth(connected=True, response_time_ms=await database.ping())
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Database health check failed", error=str(e))
        db_health = DatabaseHealth(connected=False, error=str(e))

    runner_health = None
    if db_health.connected:
        runner_health = await _runner_health(request)

    health = HealthResponse(
        ok=db_health.connected,
        version=settings.version,
        environment=settings.environment,
        timestamp=datetime.now(UTC).isoformat(),
        database=db_health,
        runner=runner_health,
    )

    return create_success_response(data=health.model_dump())


async def _runner_health(request: Request) -> RunnerHealth | None:
    runner = getattr(request.app.state, "job_runner", None)
    repository = getattr(request.app.state, "job_repository", None)
    if runner is None or repository is None:
        return None

    try:
        by_status = (await repository.stats()).by_status
    except StorageError as e:
        logger.warning("Queue depth unavailable", error=e.message)
        by_status = {}

    return RunnerHealth(
        running=runner.is_running,
        active_jobs=runner.active_jobs,
        pending_jobs=by_status.get(JobStatus.PENDING.value, 0),
        running_jobs=by_status.get(JobStatus.RUNNING.value, 0),
    )
