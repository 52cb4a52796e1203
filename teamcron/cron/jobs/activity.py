"""
Activity monitoring job.

Flags reports with no recent activity to their manager. A report counts as
active when any of these happened since the cutoff:

- a task assigned to them was created or updated
- a one-on-one with them was scheduled
- feedback about them was written
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from teamcron.cron.base import CronJob, make_deduplication_key
from teamcron.cron.types import ExecutionContext, ExecutionResult
from teamcron.models.activity import Feedback, OneOnOne
from teamcron.models.person import Person, PersonStatus
from teamcron.models.task import Task
from teamcron.schemas.notification import (
    InactiveReport,
    InactivityPayload,
    NotificationDraft,
    NotificationType,
)

# One alert per unchanged set of inactive reports per week
LOOKBACK_HOURS = 168
MAX_DAYS_BACK = 90


@dataclass
class ActivitySignal:
    found: bool  # activity since the cutoff
    last_activity: datetime | None = None
    activity_type: str | None = None


async def latest_activity(db: AsyncSession, person_id: str) -> tuple[datetime, str] | None:
    """Most recent task, one-on-one or feedback activity for a person, if any."""
    candidates: list[tuple[datetime, str]] = []

    task = (
        await db.execute(
            select(Task)
            .where(Task.assignee_id == person_id)
            .order_by(Task.updated_at.desc())
            .limit(1)
        )
    ).scalar_one_or_none()
    if task:
        candidates.append((max(task.updated_at, task.created_at), "task"))

    one_on_one = (
        await db.execute(
            select(OneOnOne)
            .where(OneOnOne.report_id == person_id, OneOnOne.scheduled_at.is_not(None))
            .order_by(OneOnOne.scheduled_at.desc())
            .limit(1)
        )
    ).scalar_one_or_none()
    if one_on_one:
        candidates.append((one_on_one.scheduled_at, "one-on-one"))

    feedback = (
        await db.execute(
            select(Feedback)
            .where(Feedback.about_id == person_id)
            .order_by(Feedback.created_at.desc())
            .limit(1)
        )
    ).scalar_one_or_none()
    if feedback:
        candidates.append((feedback.created_at, "feedback"))

    return max(candidates, key=lambda c: c[0]) if candidates else None


async def check_recent_activity(
    db: AsyncSession, person_id: str, cutoff: datetime
) -> ActivitySignal:
    """Latest activity for a person, flagged as found when it is at or after ``cutoff``."""
    latest = await latest_activity(db, person_id)
    if latest is None:
        return ActivitySignal(False)
    last_activity, activity_type = latest
    return ActivitySignal(last_activity >= cutoff, last_activity, activity_type)


def activity_deduplication_key(inactive: list[InactiveReport]) -> str:
    return make_deduplication_key("activity", (r.name for r in inactive))


class ActivityMonitoringJob(CronJob):
    id = "activity-monitoring"
    name = "Activity Monitoring"
    description = "Notifies managers about team members with no recent activity"
    schedule = "0 10 * * 1"  # Weekly on Monday at 10 AM

    def get_default_config(self) -> dict[str, Any]:
        return {"daysBack": 14}

    def validate_config(self, config: dict[str, Any]) -> bool:
        days_back = config.get("daysBack")
        return (
            isinstance(days_back, int)
            and not isinstance(days_back, bool)
            and 0 < days_back <= MAX_DAYS_BACK
        )

    async def run(
        self, db: AsyncSession, context: ExecutionContext, result: ExecutionResult
    ) -> None:
        organization_id = context.organization_id
        days_back = self.resolved_config(context)["daysBack"]
        cutoff = context.started_at - timedelta(days=days_back)

        managers = await self._active_managers(db, organization_id)
        result.metadata["managersProcessed"] = len(managers)

        inactive_found = 0
        for manager in managers:
            inactive = await self._find_inactive_reports(db, manager, cutoff)
            if not inactive:
                continue
            inactive_found += len(inactive)

            key = activity_deduplication_key(inactive)
            draft = self._build_draft(manager.user_id, organization_id, inactive, days_back)
            await self.notify(db, context, draft, key, LOOKBACK_HOURS, result)

        result.metadata["inactiveReportsFound"] = inactive_found

    async def _active_managers(self, db: AsyncSession, organization_id: str) -> list[Person]:
        report = aliased(Person)
        has_reports = exists().where(report.manager_id == Person.id)
        stmt = (
            select(Person)
            .where(
                Person.organization_id == organization_id,
                Person.status == PersonStatus.ACTIVE.value,
                Person.user_id.is_not(None),
                has_reports,
            )
            .options(selectinload(Person.reports))
            .order_by(Person.name)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def _find_inactive_reports(
        self, db: AsyncSession, manager: Person, cutoff: datetime
    ) -> list[InactiveReport]:
        inactive = []
        for report in sorted(manager.reports, key=lambda p: p.name):
            if not report.is_active:
                continue
            signal = await check_recent_activity(db, report.id, cutoff)
            if not signal.found:
                inactive.append(
                    InactiveReport(
                        name=report.name,
                        last_activity=(
                            signal.last_activity.isoformat() if signal.last_activity else None
                        ),
                        activity_type=signal.activity_type,
                    )
                )
        return inactive

    def _build_draft(
        self,
        user_id: str,
        organization_id: str,
        inactive: list[InactiveReport],
        days_back: int,
    ) -> NotificationDraft:
        if len(inactive) == 1:
            title = "Team Member Activity Check"
            message = (
                f"{inactive[0].name} hasn't had any recent activity in the last "
                f"{days_back} days. Consider checking in with them."
            )
        else:
            names = ", ".join(r.name for r in inactive)
            title = "Team Activity Check"
            message = (
                f"{len(inactive)} team members haven't had recent activity in the last "
                f"{days_back} days: {names}. Consider checking in with them."
            )

        return NotificationDraft(
            title=title,
            message=message,
            type=NotificationType.WARNING,
            user_id=user_id,
            organization_id=organization_id,
            payload=InactivityPayload(days_back=days_back, inactive_reports=inactive),
        )
