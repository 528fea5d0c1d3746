from collections.abc import AsyncGenerator, Generator

import pytest
from fastapi.testclient import TestClient

from jobqueue.config.settings import Settings
from jobqueue.infra.database import Database
from jobqueue.main import create_app
from jobqueue.v1.core.registries import JobHandlerRegistry
from jobqueue.v1.jobs.handlers import MaintenanceCleanupHandler
from jobqueue.v1.jobs.repository import SqlAlchemyJobRepository

from fakes import EchoHandler


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite database."""
    return Settings(
        _env_file=None,
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}",
        max_concurrent_jobs=2,
        batch_size=4,
        poll_interval_ms=0,
        trigger_code="test-code",
    )


@pytest.fixture
async def database(test_settings) -> AsyncGenerator[Database, None]:
    """Create a fresh database with the jobs table for each test."""
    database = Database(test_settings)
    await database.create_all()
    yield database
    await database.close()


@pytest.fixture
def repository(database) -> SqlAlchemyJobRepository:
    return SqlAlchemyJobRepository(database.SessionLocal)


@pytest.fixture
def registry() -> JobHandlerRegistry:
    return JobHandlerRegistry()


@pytest.fixture
def app(test_settings):
    """Create a test FastAPI application with an echo handler for fetch_json jobs."""

    def handlers(settings, repository):
        return [EchoHandler(), MaintenanceCleanupHandler(settings, repository)]

    return create_app(settings=test_settings, handler_factory=handlers)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client; entering it runs the application lifespan."""
    with TestClient(app) as test_client:
        yield test_client
