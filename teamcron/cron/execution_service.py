"""
Execution record service.

Audit trail for every (job, organization) invocation. The service only
records what the runner tells it; it never interprets job results.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from teamcron.core.datetime_utils import get_cutoff, utc_now
from teamcron.core.logging import get_logger
from teamcron.cron.errors import ExecutionRecordNotFoundError, InvalidExecutionTransitionError
from teamcron.models.job_execution import CronJobExecution, ExecutionStatus

logger = get_logger(__name__)


@dataclass
class JobExecutionStats:
    """Aggregates for a single job id."""

    job_id: str
    total: int = 0
    completed: int = 0
    failed: int = 0
    notifications: int = 0


@dataclass
class ExecutionStats:
    """Aggregates over a reporting window."""

    total_executions: int
    completed: int
    failed: int
    running: int
    success_rate: float
    total_notifications: int
    days_back: int
    by_job: list[JobExecutionStats] = field(default_factory=list)


class ExecutionService:
    """Reads and writes ``cron_job_executions`` rows."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def start_execution(
        self,
        job_id: str,
        job_name: str,
        organization_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> CronJobExecution:
        """Create and commit a ``running`` record before the job body runs."""
        execution = CronJobExecution(
            job_id=job_id,
            job_name=job_name,
            organization_id=organization_id,
            status=ExecutionStatus.RUNNING,
            started_at=utc_now(),
            notifications_created=0,
            metadata_json=dict(metadata or {}),
        )
        self.db.add(execution)
        await self.db.commit()

        logger.bind(
            execution_id=execution.id, job_id=job_id, organization_id=organization_id
        ).debug("cron_execution_started")
        return execution

    async def complete_execution(
        self,
        execution_id: str,
        notifications_created: int,
        metadata: dict[str, Any] | None = None,
    ) -> CronJobExecution:
        execution = await self._get_running(execution_id)
        execution.status = ExecutionStatus.COMPLETED
        execution.completed_at = utc_now()
        execution.notifications_created = notifications_created
        execution.metadata_json = {**(execution.metadata_json or {}), **(metadata or {})}
        await self.db.commit()

        logger.bind(
            execution_id=execution_id,
            job_id=execution.job_id,
            notifications_created=notifications_created,
        ).debug("cron_execution_completed")
        return execution

    async def fail_execution(
        self,
        execution_id: str,
        error_message: str,
        metadata: dict[str, Any] | None = None,
        notifications_created: int = 0,
    ) -> CronJobExecution:
        execution = await self._get_running(execution_id)
        execution.status = ExecutionStatus.FAILED
        execution.completed_at = utc_now()
        execution.error = error_message
        execution.notifications_created = notifications_created
        execution.metadata_json = {**(execution.metadata_json or {}), **(metadata or {})}
        await self.db.commit()

        logger.bind(
            execution_id=execution_id, job_id=execution.job_id, error=error_message
        ).debug("cron_execution_failed")
        return execution

    async def _get_running(self, execution_id: str) -> CronJobExecution:
        execution = await self.db.get(CronJobExecution, execution_id)
        if execution is None:
            raise ExecutionRecordNotFoundError(execution_id)
        if execution.status != ExecutionStatus.RUNNING:
            raise InvalidExecutionTransitionError(
                f"Execution '{execution_id}' is already {execution.status.value}"
            )
        return execution

    async def get_recent_executions(
        self,
        organization_id: str | None = None,
        limit: int = 50,
        job_id: str | None = None,
    ) -> list[CronJobExecution]:
        query = select(CronJobExecution).order_by(CronJobExecution.started_at.desc())
        if organization_id:
            query = query.where(CronJobExecution.organization_id == organization_id)
        if job_id:
            query = query.where(CronJobExecution.job_id == job_id)

        result = await self.db.execute(query.limit(limit))
        return list(result.scalars().all())

    async def get_execution_stats(
        self,
        organization_id: str | None = None,
        days_back: int = 7,
    ) -> ExecutionStats:
        """Counts, success rate and notification totals over the last ``days_back`` days."""
        cutoff = get_cutoff(days=days_back)
        query = (
            select(
                CronJobExecution.job_id,
                CronJobExecution.status,
                func.count(CronJobExecution.id),
                func.coalesce(func.sum(CronJobExecution.notifications_created), 0),
            )
            .where(CronJobExecution.started_at >= cutoff)
            .group_by(CronJobExecution.job_id, CronJobExecution.status)
        )
        if organization_id:
            query = query.where(CronJobExecution.organization_id == organization_id)

        rows = (await self.db.execute(query)).all()

        by_job: dict[str, JobExecutionStats] = {}
        totals = {status: 0 for status in ExecutionStatus}
        total_notifications = 0
        for job_id, status, count, notifications in rows:
            status = ExecutionStatus(status)
            stats = by_job.setdefault(job_id, JobExecutionStats(job_id=job_id))
            stats.total += count
            stats.notifications += int(notifications)
            if status == ExecutionStatus.COMPLETED:
                stats.completed += count
            elif status == ExecutionStatus.FAILED:
                stats.failed += count
            totals[status] += count
            total_notifications += int(notifications)

        total = sum(totals.values())
        return ExecutionStats(
            total_executions=total,
            completed=totals[ExecutionStatus.COMPLETED],
            failed=totals[ExecutionStatus.FAILED],
            running=totals[ExecutionStatus.RUNNING],
            success_rate=totals[ExecutionStatus.COMPLETED] / total if total > 0 else 0.0,
            total_notifications=total_notifications,
            days_back=days_back,
            by_job=sorted(by_job.values(), key=lambda s: s.job_id),
        )

    async def cleanup_old_executions(self, days_to_keep: int = 90) -> int:
        """Delete records started before the retention horizon. Returns the count removed."""
        cutoff = get_cutoff(days=days_to_keep)
        result = await self.db.execute(
            delete(CronJobExecution).where(CronJobExecution.started_at < cutoff)
        )
        await self.db.commit()

        removed = result.rowcount or 0
        logger.bind(removed=removed, days_to_keep=days_to_keep).info("cron_executions_cleaned")
        return removed

    async def find_stale_executions(
        self,
        older_than_hours: int = 24,
        now: datetime | None = None,
    ) -> list[CronJobExecution]:
        """``running`` records older than the threshold, i.e. runs whose process died."""
        cutoff = get_cutoff(hours=older_than_hours, now=now)
        result = await self.db.execute(
            select(CronJobExecution)
            .where(
                CronJobExecution.status == ExecutionStatus.RUNNING,
                CronJobExecution.started_at < cutoff,
            )
            .order_by(CronJobExecution.started_at)
        )
        return list(result.scalars().all())
