"""Cron job execution history model."""

import enum
from datetime import datetime

from sqlalchemy import JSON, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from teamcron.models.base import Base, new_id


class ExecutionStatus(str, enum.Enum):
    """Lifecycle of one execution record: running -> completed | failed."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class CronJobExecution(Base):
    """Records each (job, organization) execution attempt."""

    __tablename__ = "cron_job_executions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    job_id: Mapped[str] = mapped_column(String(100), index=True)
    job_name: Mapped[str] = mapped_column(String(255))
    organization_id: Mapped[str | None] = mapped_column(String(36), index=True)
    status: Mapped[ExecutionStatus] = mapped_column(
        Enum(
            ExecutionStatus,
            values_callable=lambda e: [x.value for x in e],
            name="cronjobexecutionstatus",
            native_enum=False,
            length=20,
        ),
        default=ExecutionStatus.RUNNING,
        index=True,
    )
    started_at: Mapped[datetime] = mapped_column(index=True)
    completed_at: Mapped[datetime | None] = mapped_column(default=None)
    notifications_created: Mapped[int] = mapped_column(Integer, default=0)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[dict] = mapped_column("metadata", JSON, default=dict)

    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def __repr__(self) -> str:
        return f"<CronJobExecution {self.job_id}@{self.organization_id} {self.status.value}>"
