"""Cron trigger and execution history endpoints.

Every route here requires ``Authorization: Bearer <CRON_SECRET>``.
"""

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import JSONResponse

from teamcron.core.datetime_utils import utc_now
from teamcron.core.logging import get_logger
from teamcron.cron.errors import JobNotFoundError
from teamcron.cron.execution_service import ExecutionService
from teamcron.cron.runner import JobRunOutcome
from teamcron.dependencies import Config, CronAuth, CronRunnerDep, DBSession
from teamcron.models.job_execution import CronJobExecution
from teamcron.schemas.cron import (
    CronTriggerResponse,
    ExecutionResponse,
    ExecutionStatsResponse,
    JobInfoResponse,
    JobRunResultResponse,
    JobStatsResponse,
    RunSummaryResponse,
)

logger = get_logger(__name__)

router = APIRouter(dependencies=[CronAuth])


def _execution_response(execution: CronJobExecution) -> ExecutionResponse:
    return ExecutionResponse(
        id=execution.id,
        job_id=execution.job_id,
        job_name=execution.job_name,
        organization_id=execution.organization_id,
        status=execution.status.value,
        started_at=execution.started_at,
        completed_at=execution.completed_at,
        duration_seconds=execution.duration_seconds,
        notifications_created=execution.notifications_created,
        error=execution.error,
        metadata=execution.metadata_json or {},
    )


@router.get("/cron/notifications", response_model=CronTriggerResponse)
async def run_notification_jobs(
    runner: CronRunnerDep,
    job: str | None = Query(default=None, description="Run only this job id"),
    org: str | None = Query(default=None, description="Run only for this organization id"),
    verbose: bool = Query(default=False),
    dry_run: bool = Query(default=False, alias="dryRun"),
) -> CronTriggerResponse | JSONResponse:
    """
    Run notification jobs.

    Examples:
    - GET /api/cron/notifications (all jobs, all organizations)
    - GET /api/cron/notifications?job=birthday-notification
    - GET /api/cron/notifications?org=<organization id>
    """
    if job and job not in runner.registry:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(JobNotFoundError(job)),
        )

    logger.bind(job_id=job or "all", organization_id=org or "all").info("cron_api_triggered")

    def log_outcome(outcome: JobRunOutcome) -> None:
        if verbose:
            logger.bind(
                label=outcome.label,
                success=outcome.success,
                notifications_created=outcome.notifications_created,
                metadata=outcome.metadata,
                error=outcome.error,
            ).info("cron_api_outcome")

    try:
        summary = await runner.run(
            job_id=job,
            organization_id=org,
            dry_run=dry_run,
            on_outcome=log_outcome,
        )
    except Exception as e:
        logger.bind(error=str(e)).exception("cron_api_run_failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": str(e) or "Unknown error",
                "timestamp": utc_now().isoformat(),
            },
        )

    return CronTriggerResponse(
        success=True,
        message="Cron jobs executed successfully",
        summary=RunSummaryResponse(
            total_jobs=summary.total_jobs,
            successful_jobs=summary.successful_jobs,
            failed_jobs=summary.failed_jobs,
            total_notifications=summary.total_notifications,
            dry_run=summary.dry_run,
            results=[
                JobRunResultResponse(
                    job_id=r.job_id,
                    job_name=r.job_name,
                    organization_id=r.organization_id,
                    execution_id=r.execution_id,
                    success=r.success,
                    notifications_created=r.notifications_created,
                    error=r.error,
                )
                for r in summary.results
            ],
        ),
        timestamp=utc_now(),
    )


@router.get("/cron/jobs", response_model=list[JobInfoResponse])
async def list_jobs(runner: CronRunnerDep, config: Config) -> list[JobInfoResponse]:
    """List registered jobs with their effective configuration."""
    return [
        JobInfoResponse(
            id=job.id,
            name=job.name,
            description=job.description,
            schedule=job.schedule,
            enabled=job.id not in config.cron.disabled_jobs,
            config=runner.registry.build_config(job),
        )
        for job in runner.registry.get_all_jobs()
    ]


@router.get("/cron/executions", response_model=list[ExecutionResponse])
async def list_executions(
    db: DBSession,
    org: str | None = Query(default=None, description="Filter by organization id"),
    job: str | None = Query(default=None, description="Filter by job id"),
    limit: int = Query(default=50, ge=1, le=200),
) -> list[ExecutionResponse]:
    """Recent execution records, newest first."""
    executions = await ExecutionService(db).get_recent_executions(
        organization_id=org, limit=limit, job_id=job
    )
    return [_execution_response(e) for e in executions]


@router.get("/cron/stats", response_model=ExecutionStatsResponse)
async def get_stats(
    db: DBSession,
    org: str | None = Query(default=None, description="Filter by organization id"),
    days: int = Query(default=7, ge=1, le=365),
) -> ExecutionStatsResponse:
    """Aggregated execution statistics over the last ``days`` days."""
    stats = await ExecutionService(db).get_execution_stats(organization_id=org, days_back=days)
    return ExecutionStatsResponse(
        total_executions=stats.total_executions,
        completed=stats.completed,
        failed=stats.failed,
        running=stats.running,
        success_rate=stats.success_rate,
        total_notifications=stats.total_notifications,
        days_back=stats.days_back,
        by_job=[
            JobStatsResponse(
                job_id=s.job_id,
                total=s.total,
                completed=s.completed,
                failed=s.failed,
                notifications=s.notifications,
            )
            for s in stats.by_job
        ],
    )
