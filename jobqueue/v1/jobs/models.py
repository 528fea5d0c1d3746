"""
Job record model and lifecycle states.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, TIMESTAMP, CheckConstraint, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from jobqueue.infra.database import Base


def utc_now() -> datetime:
    return datetime.now(UTC)


class JobStatus(str, Enum):
    """Job status enumeration."""

    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.ERROR)

    def can_transition_to(self, target: "JobStatus") -> bool:
        """Check a transition against the lifecycle pending -> running -> done|error."""
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    # pending -> error covers jobs that fail before they could be claimed
    JobStatus.PENDING: frozenset({JobStatus.RUNNING, JobStatus.ERROR}),
    JobStatus.RUNNING: frozenset({JobStatus.DONE, JobStatus.ERROR}),
    JobStatus.DONE: frozenset(),
    JobStatus.ERROR: frozenset(),
}


class JobKind(str, Enum):
    """Closed set of job kinds. Each kind is served by at most one handler."""

    FETCH_JSON = "fetch_json"
    MAINTENANCE_CLEANUP = "maintenance_cleanup"
    CREATE_STOCK = "create_stock"
    CRAWL_PRICE = "crawl_price"
    COMPUTE_SIGNAL = "compute_signal"


class Job(Base):
    """
    Persisted unit of asynchronous work.

    The payload is written once on enqueue and never modified; handler output
    is stored separately in ``output`` when the job finishes.
    """

    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Job kind identifier"
    )
    status: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=JobStatus.PENDING.value,
        comment="Job status: pending|running|done|error",
    )
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Job-specific parameters, interpreted by the handler only",
    )
    output: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True, comment="Result document written on success"
    )
    error_message: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Failure message, set only in error status"
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utc_now
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'running', 'done', 'error')",
            name="jobs_status_check",
        ),
        Index("ix_jobs_status_created_at", "status", "created_at"),
    )

    @classmethod
    def new(cls, kind: JobKind | str, payload: dict[str, Any] | None = None) -> "Job":
        """Build an unsaved pending job; the repository assigns the id."""
        now = utc_now()
        return cls(
            kind=JobKind(kind).value,
            status=JobStatus.PENDING.value,
            payload=dict(payload or {}),
            created_at=now,
            updated_at=now,
        )

    def is_terminal(self) -> bool:
        """Check if job is in a terminal state (done, error)."""
        return JobStatus(self.status).is_terminal

    def __repr__(self) -> str:
        return f"<Job id={self.id} kind={self.kind} status={self.status}>"
