import httpx
import pytest

from jobqueue.v1.core.exceptions import HandlerError
from jobqueue.v1.jobs.handlers import FetchJsonHandler, MaintenanceCleanupHandler
from jobqueue.v1.jobs.models import Job, JobKind

from fakes import FailingRepository


def fetch_job(payload: dict) -> Job:
    job = Job.new(JobKind.FETCH_JSON, payload)
    job.id = 1
    return job


def handler_with(test_settings, respond) -> FetchJsonHandler:
    client = httpx.AsyncClient(transport=httpx.MockTransport(respond))
    return FetchJsonHandler(test_settings, client=client)


class TestFetchJsonHandler:
    async def test_success_returns_document(self, test_settings):
        def respond(request: httpx.Request) -> httpx.Response:
            assert request.url == "https://example.com/data.json"
            return httpx.Response(200, json={"price": 10})

        handler = handler_with(test_settings, respond)
        result = await handler.handle(fetch_job({"url": "https://example.com/data.json"}))

        assert result.success
        assert result.output == {
            "url": "https://example.com/data.json",
            "status_code": 200,
            "data": {"price": 10},
        }

    async def test_http_error_is_business_failure(self, test_settings):
        handler = handler_with(test_settings, lambda request: httpx.Response(404))

        result = await handler.handle(fetch_job({"url": "https://example.com/missing"}))

        assert not result.success
        assert result.error == "HTTP error: 404"

    async def test_non_json_body(self, test_settings):
        handler = handler_with(
            test_settings, lambda request: httpx.Response(200, text="<html>")
        )

        result = await handler.handle(fetch_job({"url": "https://example.com/page"}))

        assert not result.success
        assert "not valid JSON" in result.error

    @pytest.mark.parametrize("payload", [{}, {"url": "not a url"}])
    async def test_invalid_payload(self, test_settings, payload):
        handler = handler_with(test_settings, lambda request: httpx.Response(200))

        result = await handler.handle(fetch_job(payload))

        assert not result.success
        assert result.error.startswith("Invalid payload: url")

    async def test_transport_error_raises_handler_error(self, test_settings):
        def respond(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        handler = handler_with(test_settings, respond)

        with pytest.raises(HandlerError, match="connection refused"):
            await handler.handle(fetch_job({"url": "https://example.com/data.json"}))


class TestMaintenanceCleanupHandler:
    async def test_uses_configured_retention(self, test_settings, repository):
        handler = MaintenanceCleanupHandler(test_settings, repository)

        result = await handler.handle(Job.new(JobKind.MAINTENANCE_CLEANUP))

        assert result.success
        assert result.output == {
            "older_than_days": test_settings.job_cleanup_after_days,
            "dry_run": False,
            "deleted_count": 0,
        }

    async def test_dry_run_reports_would_delete(self, test_settings, repository):
        [job_id] = await repository.enqueue([Job.new(JobKind.FETCH_JSON)])
        await repository.mark_done(job_id, None)
        handler = MaintenanceCleanupHandler(test_settings, repository)

        result = await handler.handle(
            Job.new(JobKind.MAINTENANCE_CLEANUP, {"older_than_days": 0, "dry_run": True})
        )

        assert result.output["would_delete"] == 1
        assert len(await repository.list_all()) == 1

    async def test_invalid_payload(self, test_settings, repository):
        handler = MaintenanceCleanupHandler(test_settings, repository)

        result = await handler.handle(
            Job.new(JobKind.MAINTENANCE_CLEANUP, {"older_than_days": -1})
        )

        assert not result.success
        assert "older_than_days" in result.error

    async def test_storage_failure_raises_handler_error(self, test_settings, repository):
        failing = FailingRepository(repository, {"delete_older_than"})
        handler = MaintenanceCleanupHandler(test_settings, failing)

        with pytest.raises(HandlerError, match="Job cleanup failed"):
            await handler.handle(Job.new(JobKind.MAINTENANCE_CLEANUP))
