from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Response model serialized with the camelCase keys cron hosts expect."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobRunResultResponse(CamelModel):
    """Outcome of one (job, organization) pair."""

    job_id: str
    job_name: str
    organization_id: str
    execution_id: str | None = None
    success: bool
    notifications_created: int
    error: str | None = None


class RunSummaryResponse(CamelModel):
    total_jobs: int
    successful_jobs: int
    failed_jobs: int
    total_notifications: int
    dry_run: bool = False
    results: list[JobRunResultResponse]


class CronTriggerResponse(CamelModel):
    """Response body of the HTTP cron trigger."""

    success: bool
    message: str
    summary: RunSummaryResponse
    timestamp: datetime


class JobInfoResponse(CamelModel):
    id: str
    name: str
    description: str
    schedule: str
    enabled: bool
    config: dict[str, Any]


class ExecutionResponse(CamelModel):
    """One row of execution history."""

    id: str
    job_id: str
    job_name: str
    organization_id: str | None = None
    status: str
    started_at: datetime
    completed_at: datetime | None = None
    duration_seconds: float | None = None
    notifications_created: int
    error: str | None = None
    metadata: dict[str, Any] = {}


class JobStatsResponse(CamelModel):
    job_id: str
    total: int
    completed: int
    failed: int
    notifications: int


class ExecutionStatsResponse(CamelModel):
    total_executions: int
    completed: int
    failed: int
    running: int
    success_rate: float
    total_notifications: int
    days_back: int
    by_job: list[JobStatsResponse]
