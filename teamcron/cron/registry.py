"""
Job registry.

Owns the catalog of job instances and runs them for one organization at a
time. The registry holds no per-execution state, so one instance can be
shared by concurrent runs for different organizations.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from teamcron.core.datetime_utils import to_naive_utc, utc_now
from teamcron.core.logging import get_logger
from teamcron.cron.base import CronJob
from teamcron.cron.errors import JobNotFoundError
from teamcron.cron.types import ExecutionContext, ExecutionResult

logger = get_logger(__name__)


class JobRegistry:
    """In-memory catalog of jobs keyed by job id, in registration order."""

    def __init__(
        self,
        jobs: Iterable[CronJob] = (),
        job_config: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> None:
        self._jobs: dict[str, CronJob] = {}
        self._job_config = {job_id: dict(cfg) for job_id, cfg in (job_config or {}).items()}
        for job in jobs:
            self.register(job)

    def register(self, job: CronJob) -> None:
        """Add a job; re-registering an id replaces the earlier instance in place."""
        self._jobs[job.id] = job

    def get_job(self, job_id: str) -> CronJob | None:
        return self._jobs.get(job_id)

    def get_all_jobs(self) -> list[CronJob]:
        return list(self._jobs.values())

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    def build_config(self, job: CronJob) -> dict[str, Any]:
        """Default config overlaid with configured overrides for this job."""
        return {**job.get_default_config(), **self._job_config.get(job.id, {})}

    async def execute_job(
        self,
        db: AsyncSession,
        job_id: str,
        started_at: datetime | None = None,
        organization_id: str | None = None,
        dry_run: bool = False,
    ) -> ExecutionResult:
        """
        Run one job for one organization.

        Unknown ids, invalid configuration and exceptions escaping the job
        are all reported as failed results rather than raised.
        """
        job = self.get_job(job_id)
        if job is None:
            error = str(JobNotFoundError(job_id))
            logger.bind(job_id=job_id, organization_id=organization_id).warning("cron_job_not_found")
            return ExecutionResult.failure(error)

        config = self.build_config(job)
        if not job.validate_config(config):
            logger.bind(job_id=job_id, config=config).warning("cron_job_invalid_config")
            return ExecutionResult.failure(f"Invalid configuration for job '{job_id}'", config=config)

        context = ExecutionContext(
            config=config,
            started_at=to_naive_utc(started_at) if started_at else utc_now(),
            organization_id=organization_id,
            dry_run=dry_run,
        )

        log = logger.bind(job_id=job_id, organization_id=organization_id, dry_run=dry_run)
        log.debug("cron_job_started")
        try:
            result = await job.execute(db, context)
        except Exception as e:
            log.bind(error=str(e)).error("cron_job_raised")
            return ExecutionResult.failure(str(e) or type(e).__name__)

        log.bind(
            success=result.success,
            notifications_created=result.notifications_created,
        ).debug("cron_job_finished")
        return result

    async def execute_all_jobs(
        self,
        db: AsyncSession,
        organization_id: str | None,
        dry_run: bool = False,
    ) -> dict[str, ExecutionResult]:
        """Run every registered job for one organization, sequentially.

        One job's failure never prevents the next job from running.
        """
        started_at = utc_now()
        results: dict[str, ExecutionResult] = {}
        for job in self.get_all_jobs():
            results[job.id] = await self.execute_job(
                db,
                job.id,
                started_at=started_at,
                organization_id=organization_id,
                dry_run=dry_run,
            )
        return results
