import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from .settings import Settings
from .settings import settings as default_settings

# Library loggers that are too chatty at the application's level
_NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "httpx", "httpcore")


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structlog and stdlib logging for the API, the runner and the CLI."""
    settings = settings or default_settings
    level = getattr(logging, settings.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    if settings.db_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    if settings.debug:
        callsite = [structlog.processors.CallsiteParameter.FUNC_NAME]
        renderers: list[Any] = [structlog.dev.ConsoleRenderer()]
    else:
        callsite = []
        renderers = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.CallsiteParameterAdder(parameters=callsite),
            *renderers,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(),
        # A cached logger keeps the stdout it was created with
        cache_logger_on_first_use=not settings.debug,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def add_request_context(request_id: str, **context: Any) -> None:
    """Add request-specific context to all log messages."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **context)


@contextmanager
def job_log_context(job_id: int, kind: str) -> Iterator[None]:
    """
    Bind the job id and kind to every log line emitted while a job runs,
    including lines logged by its handler.

    Each job task runs in its own copy of the context, so concurrent jobs
    never see each other's bindings.
    """
    with structlog.contextvars.bound_contextvars(job_id=job_id, kind=kind):
        yield
