"""Add cron_job_executions table for job execution history

Revision ID: 002_add_cron_job_executions
Revises: 001_initial
Create Date: 2026-09-29

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002_add_cron_job_executions"
down_revision: str = "001_initial"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "cron_job_executions",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("job_id", sa.String(100), nullable=False),
        sa.Column("job_name", sa.String(255), nullable=False),
        sa.Column("organization_id", sa.String(36), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("notifications_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cron_job_executions_job_id", "cron_job_executions", ["job_id"])
    op.create_index(
        "ix_cron_job_executions_organization_id", "cron_job_executions", ["organization_id"]
    )
    op.create_index("ix_cron_job_executions_status", "cron_job_executions", ["status"])
    op.create_index("ix_cron_job_executions_started_at", "cron_job_executions", ["started_at"])


def downgrade() -> None:
    op.drop_index("ix_cron_job_executions_started_at", table_name="cron_job_executions")
    op.drop_index("ix_cron_job_executions_status", table_name="cron_job_executions")
    op.drop_index("ix_cron_job_executions_organization_id", table_name="cron_job_executions")
    op.drop_index("ix_cron_job_executions_job_id", table_name="cron_job_executions")
    op.drop_table("cron_job_executions")
