"""create jobs table

Revision ID: 3b1f0c2a9d41
Revises:
Create Date: 2026-10-17 09:12:40.118305

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b1f0c2a9d41"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "jobs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("kind", sa.Text, nullable=False, comment="Job kind identifier"),
        sa.Column(
            "status",
            sa.Text,
            nullable=False,
            server_default="pending",
            comment="Job status: pending|running|done|error",
        ),
        sa.Column(
            "payload",
            sa.JSON,
            nullable=False,
            comment="Job-specific parameters, interpreted by the handler only",
        ),
        sa.Column(
            "output", sa.JSON, nullable=True, comment="Result document written on success"
        ),
        sa.Column(
            "error_message",
            sa.Text,
            nullable=True,
            comment="Failure message, set only in error status",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'running', 'done', 'error')",
            name="jobs_status_check",
        ),
    )

    # Pending jobs are fetched oldest first
    op.create_index("ix_jobs_status_created_at", "jobs", ["status", "created_at"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_jobs_status_created_at", table_name="jobs")
    op.drop_table("jobs")
