"""
Job handlers.

Each handler serves one job kind and is registered in the job handler
registry at startup.
"""

from typing import Any

import httpx
from pydantic import BaseModel, Field, HttpUrl, ValidationError

from jobqueue.config.logging import get_logger
from jobqueue.config.settings import Settings
from jobqueue.v1.core.exceptions import HandlerError, StorageError
from jobqueue.v1.jobs.models import Job, JobKind
from jobqueue.v1.jobs.repository import SqlAlchemyJobRepository
from jobqueue.v1.jobs.schemas import HandlerResult

logger = get_logger(__name__)


class FetchJsonPayload(BaseModel):
    url: HttpUrl


class FetchJsonHandler:
    """
    Job handler fetching a JSON document over HTTP.

    Payload expected:
    {
        "url": "https://example.com/data.json"
    }
    """

    kind = JobKind.FETCH_JSON

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._client = client

    async def handle(self, job: Job) -> HandlerResult:
        try:
            payload = FetchJsonPayload.model_validate(job.payload)
        except ValidationError as e:
            return HandlerResult.fail(f"Invalid payload: {_first_error(e)}")

        url = str(payload.url)
        try:
            response = await self._get(url)
        except httpx.TransportError as e:
            raise HandlerError(f"Request to {url} failed: {e}") from e

        if response.is_error:
            return HandlerResult.fail(f"HTTP error: {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            return HandlerResult.fail(f"Response from {url} is not valid JSON")

        logger.info(
            "Fetched JSON document", url=url, status_code=response.status_code
        )
        return HandlerResult.ok(
            {"url": url, "status_code": response.status_code, "data": data}
        )

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url)

        async with httpx.AsyncClient(timeout=self.settings.fetch_timeout_s) as client:
            return await client.get(url)


class MaintenanceCleanupPayload(BaseModel):
    older_than_days: int | None = Field(default=None, ge=0)
    dry_run: bool = False


class MaintenanceCleanupHandler:
    """
    Job handler removing finished jobs past the retention period.

    Payload expected:
    {
        "older_than_days": 30,  # optional, defaults to JOB_CLEANUP_AFTER_DAYS
        "dry_run": false  # optional
    }
    """

    kind = JobKind.MAINTENANCE_CLEANUP

    def __init__(self, settings: Settings, repository: SqlAlchemyJobRepository):
        self.settings = settings
        self.repository = repository

    async def handle(self, job: Job) -> HandlerResult:
        try:
            payload = MaintenanceCleanupPayload.model_validate(job.payload)
        except ValidationError as e:
            return HandlerResult.fail(f"Invalid payload: {_first_error(e)}")

        days = (
            payload.older_than_days
            if payload.older_than_days is not None
            else self.settings.job_cleanup_after_days
        )

        try:
            count = await self.repository.delete_older_than(days, dry_run=payload.dry_run)
        except StorageError as e:
            raise HandlerError(f"Job cleanup failed: {e.message}") from e

        logger.info(
            "Maintenance cleanup completed",
            older_than_days=days,
            dry_run=payload.dry_run,
            count=count,
        )

        result: dict[str, Any] = {
            "older_than_days": days,
            "dry_run": payload.dry_run,
        }
        result["would_delete" if payload.dry_run else "deleted_count"] = count
        return HandlerResult.ok(result)


def _first_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "payload"
    return f"{location}: {first.get('msg')}"
