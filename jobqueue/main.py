from collections.abc import Callable, Iterable
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from jobqueue.config.logging import get_logger, setup_logging
from jobqueue.config.settings import Settings, get_settings
from jobqueue.config.settings import settings as default_settings
from jobqueue.infra.database import Database, get_database
from jobqueue.v1.core.exceptions import (
    JobQueueException,
    RequestContextMiddleware,
    general_exception_handler,
    http_exception_handler,
    job_queue_exception_handler,
    validation_exception_handler,
)
from jobqueue.v1.core.registries import JobHandler
from jobqueue.v1.healthz import router as health_router
from jobqueue.v1.jobs.registry_init import build_job_registry
from jobqueue.v1.jobs.repository import SqlAlchemyJobRepository
from jobqueue.v1.jobs.routes import router as jobs_router
from jobqueue.v1.jobs.runner import JobRunner

logger = get_logger(__name__)

HandlerFactory = Callable[[Settings, SqlAlchemyJobRepository], Iterable[JobHandler]]


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    handler_factory: HandlerFactory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or default_settings
    owns_database = database is None
    database = database or Database(settings)

    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.is_sqlite or settings.environment == "development":
            await database.create_all()

        repository = SqlAlchemyJobRepository(database.SessionLocal)
        handlers = handler_factory(settings, repository) if handler_factory else None
        registry = build_job_registry(settings, repository, handlers)

        app.state.database = database
        app.state.job_repository = repository
        app.state.job_runner = JobRunner.from_settings(settings, repository, registry)

        logger.info("Job queue started", environment=settings.environment)
        try:
            yield
        finally:
            await app.state.job_runner.stop()
            if owns_database:
                await database.close()
            logger.info("Job queue stopped")

    app = FastAPI(
        title=settings.app_name,
        description="Persistent job queue with a bounded-concurrency runner",
        version=settings.version,
        debug=settings.debug,
        openapi_url="/v1/openapi.json" if settings.debug else None,
        docs_url="/v1/docs" if settings.debug else None,
        redoc_url="/v1/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_database] = lambda: database

    app.add_middleware(RequestContextMiddleware)

    if settings.debug:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(JobQueueException, job_queue_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(health_router, prefix="/v1", tags=["health"])
    app.include_router(jobs_router, prefix="/v1")

    return app


def run() -> None:
    """Serve the API with uvicorn in a single process (one runner per database)."""
    import uvicorn

    uvicorn.run(
        "jobqueue.main:create_app",
        factory=True,
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
    )


if __name__ == "__main__":
    run()
