"""
Scheduled job engine.

The composition root lives here: ``create_registry`` wires the built-in
jobs with their configured overrides and ``create_runner`` binds a registry
to a session factory.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from teamcron.config import AppConfig, get_config
from teamcron.cron.base import CronJob, make_deduplication_key
from teamcron.cron.jobs import builtin_jobs
from teamcron.cron.registry import JobRegistry
from teamcron.cron.runner import CronRunner, JobRunOutcome, RunSummary
from teamcron.cron.types import ExecutionContext, ExecutionResult
from teamcron.schemas.notification import NotificationDraft

__all__ = [
    "CronJob",
    "CronRunner",
    "ExecutionContext",
    "ExecutionResult",
    "JobRegistry",
    "JobRunOutcome",
    "NotificationDraft",
    "RunSummary",
    "create_registry",
    "create_runner",
    "make_deduplication_key",
]


def create_registry(config: AppConfig | None = None) -> JobRegistry:
    config = config or get_config()
    return JobRegistry(builtin_jobs(), job_config=config.cron.jobs)


def create_runner(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    config: AppConfig | None = None,
) -> CronRunner:
    config = config or get_config()
    if session_factory is None:
        from teamcron.core.database import AsyncSessionLocal

        session_factory = AsyncSessionLocal
    return CronRunner(
        create_registry(config),
        session_factory,
        disabled_jobs=config.cron.disabled_jobs,
    )
