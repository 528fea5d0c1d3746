"""
Job handler registry construction.

Builds the registry of all job handlers once at startup.
"""

from collections.abc import Iterable

from jobqueue.config.logging import get_logger
from jobqueue.config.settings import Settings
from jobqueue.v1.core.registries import JobHandler, JobHandlerRegistry
from jobqueue.v1.jobs.handlers import FetchJsonHandler, MaintenanceCleanupHandler
from jobqueue.v1.jobs.repository import SqlAlchemyJobRepository

logger = get_logger(__name__)


def default_handlers(
    settings: Settings, repository: SqlAlchemyJobRepository
) -> list[JobHandler]:
    return [
        FetchJsonHandler(settings),
        MaintenanceCleanupHandler(settings, repository),
    ]


def build_job_registry(
    settings: Settings,
    repository: SqlAlchemyJobRepository,
    handlers: Iterable[JobHandler] | None = None,
) -> JobHandlerRegistry:
    """Register job handlers (the default set unless given) and freeze the registry."""

    logger.info("Registering job handlers")

    if handlers is None:
        handlers = default_handlers(settings, repository)

    registry = JobHandlerRegistry(strict=settings.strict_registry)
    registry.register_handlers(handlers)
    registry.freeze()

    logger.info("Job handlers registered", registered_handlers=registry.kinds())
    return registry
