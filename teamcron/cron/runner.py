"""
Cron runner.

Entry point used by the CLI and the HTTP trigger. Enumerates organizations
and jobs, wraps every (job, organization) invocation in an execution
record, and summarizes the batch. Runs are sequential: one job for one
organization at a time.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from teamcron.core.datetime_utils import utc_now
from teamcron.core.logging import get_logger
from teamcron.cron.execution_service import ExecutionService
from teamcron.cron.registry import JobRegistry
from teamcron.cron.types import ExecutionResult
from teamcron.services.organizations import get_organization, list_organizations

logger = get_logger(__name__)


@dataclass
class JobRunOutcome:
    """Result of one (job, organization) pair, as reported to callers."""

    job_id: str
    job_name: str
    organization_id: str
    success: bool
    notifications_created: int
    execution_id: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return f"{self.job_id}@{self.organization_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobId": self.job_id,
            "jobName": self.job_name,
            "organizationId": self.organization_id,
            "executionId": self.execution_id,
            "success": self.success,
            "notificationsCreated": self.notifications_created,
            "error": self.error,
        }


@dataclass
class RunSummary:
    results: list[JobRunOutcome] = field(default_factory=list)
    dry_run: bool = False

    @property
    def total_jobs(self) -> int:
        return len(self.results)

    @property
    def successful_jobs(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_jobs(self) -> int:
        return self.total_jobs - self.successful_jobs

    @property
    def total_notifications(self) -> int:
        return sum(r.notifications_created for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalJobs": self.total_jobs,
            "successfulJobs": self.successful_jobs,
            "failedJobs": self.failed_jobs,
            "totalNotifications": self.total_notifications,
            "dryRun": self.dry_run,
            "results": [r.to_dict() for r in self.results],
        }


OutcomeCallback = Callable[[JobRunOutcome], None]


class CronRunner:
    """Drives the registry across organizations with execution bookkeeping."""

    def __init__(
        self,
        registry: JobRegistry,
        session_factory: async_sessionmaker[AsyncSession],
        disabled_jobs: list[str] | None = None,
    ) -> None:
        self.registry = registry
        self.session_factory = session_factory
        self.disabled_jobs = set(disabled_jobs or [])

    async def run(
        self,
        job_id: str | None = None,
        organization_id: str | None = None,
        dry_run: bool = False,
        on_outcome: OutcomeCallback | None = None,
    ) -> RunSummary:
        """
        Run one job or all enabled jobs, for one organization or all of them.

        Individual job failures are captured in the summary. Only errors
        outside any (job, organization) pair, such as failing to list
        organizations, propagate.
        """
        summary = RunSummary(dry_run=dry_run)
        job_ids = self._select_jobs(job_id)

        logger.bind(
            job_id=job_id or "all",
            organization_id=organization_id or "all",
            dry_run=dry_run,
        ).info("cron_run_started")

        for org_id, org_error in await self._select_organizations(organization_id):
            for current_job_id in job_ids:
                if org_error:
                    outcome = await self._record_configuration_failure(
                        current_job_id, org_id, org_error
                    )
                else:
                    outcome = await self.run_job_for_organization(
                        current_job_id, org_id, dry_run=dry_run
                    )
                summary.results.append(outcome)
                if on_outcome:
                    on_outcome(outcome)

        logger.bind(
            total_jobs=summary.total_jobs,
            successful_jobs=summary.successful_jobs,
            failed_jobs=summary.failed_jobs,
            total_notifications=summary.total_notifications,
        ).info("cron_run_completed")
        return summary

    def _select_jobs(self, job_id: str | None) -> list[str]:
        if job_id:
            return [job_id]
        return [job.id for job in self.registry.get_all_jobs() if job.id not in self.disabled_jobs]

    async def _select_organizations(
        self, organization_id: str | None
    ) -> list[tuple[str, str | None]]:
        """(organization id, configuration error) pairs to process."""
        async with self.session_factory() as db:
            if organization_id:
                organization = await get_organization(db, organization_id)
                if organization is None:
                    return [(organization_id, f"Organization '{organization_id}' not found")]
                return [(organization_id, None)]

            organizations = await list_organizations(db)
            return [(org.id, None) for org in organizations]

    def _job_name(self, job_id: str) -> str:
        job = self.registry.get_job(job_id)
        return job.name if job else job_id

    async def run_job_for_organization(
        self,
        job_id: str,
        organization_id: str,
        dry_run: bool = False,
    ) -> JobRunOutcome:
        """Execute one job for one organization inside a running -> terminal record."""
        job_name = self._job_name(job_id)
        log = logger.bind(job_id=job_id, organization_id=organization_id)

        async with self.session_factory() as db:
            executions = ExecutionService(db)
            execution = await executions.start_execution(
                job_id,
                job_name,
                organization_id,
                metadata={"dryRun": True} if dry_run else None,
            )
            execution_id = execution.id

            try:
                result = await self.registry.execute_job(
                    db,
                    job_id,
                    started_at=utc_now(),
                    organization_id=organization_id,
                    dry_run=dry_run,
                )
            except Exception as e:
                await db.rollback()
                result = ExecutionResult.failure(
                    str(e) or type(e).__name__, exceptionType=type(e).__name__
                )

            if result.success:
                await executions.complete_execution(
                    execution_id, result.notifications_created, result.metadata
                )
                log.bind(notifications_created=result.notifications_created).info(
                    "cron_job_completed"
                )
            else:
                error = result.error or "Unknown error"
                await executions.fail_execution(
                    execution_id,
                    error,
                    {**result.metadata, "error": error},
                    notifications_created=result.notifications_created,
                )
                log.bind(error=error).error("cron_job_failed")

        return JobRunOutcome(
            job_id=job_id,
            job_name=job_name,
            organization_id=organization_id,
            success=result.success,
            notifications_created=result.notifications_created,
            execution_id=execution_id,
            error=result.error,
            metadata=result.metadata,
        )

    async def _record_configuration_failure(
        self, job_id: str, organization_id: str, error: str
    ) -> JobRunOutcome:
        """Record a failed execution without running anything (bad organization scope)."""
        job_name = self._job_name(job_id)
        async with self.session_factory() as db:
            executions = ExecutionService(db)
            execution = await executions.start_execution(job_id, job_name, organization_id)
            await executions.fail_execution(execution.id, error, {"error": error})

        logger.bind(job_id=job_id, organization_id=organization_id, error=error).error(
            "cron_job_rejected"
        )
        return JobRunOutcome(
            job_id=job_id,
            job_name=job_name,
            organization_id=organization_id,
            success=False,
            notifications_created=0,
            execution_id=execution.id,
            error=error,
        )
