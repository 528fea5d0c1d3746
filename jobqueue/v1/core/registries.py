from collections.abc import Iterable
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar

from jobqueue.config.logging import get_logger
from jobqueue.v1.core.exceptions import DuplicateHandlerError

if TYPE_CHECKING:
    from jobqueue.v1.jobs.models import Job, JobKind
    from jobqueue.v1.jobs.schemas import HandlerResult

logger = get_logger(__name__)

# Base registry implementation
T = TypeVar("T")


class Registry(Generic[T]):
    """Generic registry for pluggable implementations."""

    def __init__(self, name: str):
        self.name = name
        self._implementations: dict[str, T] = {}
        self._frozen = False

    def register(self, name: str, implementation: T) -> None:
        """Register an implementation with a given name."""
        if self._frozen:
            raise RuntimeError(
                f"Cannot register '{name}' in {self.name.lower()} registry: "
                "registry is frozen"
            )
        self._implementations[name] = implementation

    def get(self, name: str) -> T:
        """Get an implementation by name."""
        if name not in self._implementations:
            raise KeyError(
                f"No {self.name.lower()} implementation registered with name: {name}"
            )
        return self._implementations[name]

    def list(self) -> list[str]:
        """List all registered implementation names."""
        return list(self._implementations.keys())

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if the registry is frozen."""
        return self._frozen


# Job Registry - background processing handlers
class JobHandler(Protocol):
    """
    Protocol for job handlers.

    A handler serves exactly one job kind. ``handle`` may run concurrently with
    other jobs, so handlers keep no per-call state on the instance; whatever
    they need (repositories, clients) is given to them at construction.

    Failures are reported in two ways:
    - ``HandlerResult(success=False, error=...)`` when the job itself cannot be
      completed (bad payload, upstream returned 404, ...)
    - raising ``HandlerError`` when the handler's own infrastructure is broken
    """

    @property
    def kind(self) -> "JobKind":
        """Job kind served by this handler."""
        ...

    async def handle(self, job: "Job") -> "HandlerResult":
        """
        Execute a job.

        Args:
            job: The job being executed, already marked running

        Returns:
            Result deciding the job's terminal status
        """
        ...


class JobHandlerRegistry(Registry[JobHandler]):
    """
    Write-once mapping from job kind to handler.

    Registering a second handler for a kind replaces the first one (last write
    wins) unless the registry is strict, in which case it is rejected.
    """

    def __init__(self, strict: bool = False):
        super().__init__("Job")
        self.strict = strict

    def register(self, name: str, implementation: JobHandler) -> None:
        if name in self._implementations:
            if self.strict:
                raise DuplicateHandlerError(
                    f"A handler is already registered for job kind: {name}"
                )
            logger.warning(
                "Replacing job handler",
                kind=name,
                previous=type(self._implementations[name]).__name__,
                handler=type(implementation).__name__,
            )
        super().register(name, implementation)

    def register_handlers(self, handlers: Iterable[JobHandler]) -> None:
        """Index handlers by the kind each one declares."""
        for handler in handlers:
            self.register(_kind_value(handler.kind), handler)

    def get_handler(self, kind: "JobKind | str") -> JobHandler | None:
        """Look up the handler for a kind, ``None`` when nothing serves it."""
        return self._implementations.get(_kind_value(kind))

    def kinds(self) -> list[str]:
        return self.list()

    def __contains__(self, kind: object) -> bool:
        return isinstance(kind, str) and _kind_value(kind) in self._implementations

    def __len__(self) -> int:
        return len(self._implementations)


def _kind_value(kind: "JobKind | str") -> str:
    return getattr(kind, "value", kind)
