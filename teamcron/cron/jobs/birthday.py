"""
Birthday notification job.

Tells managers about upcoming birthdays of their reports. The key includes
days-until, so "Dana in 7 days" and "Dana tomorrow" are separate
notifications while hourly re-runs on the same day stay quiet.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from teamcron.core.datetime_utils import days_until_anniversary, next_anniversary
from teamcron.cron.base import CronJob, make_deduplication_key
from teamcron.cron.types import ExecutionContext, ExecutionResult
from teamcron.models.person import Person
from teamcron.schemas.notification import (
    BirthdayPayload,
    NotificationDraft,
    NotificationType,
    UpcomingBirthday,
)

LOOKBACK_HOURS = 24
MAX_DAYS_AHEAD = 365


@dataclass
class Birthday:
    name: str
    occurs_on: date  # Upcoming occurrence, not the birth date
    days_until: int


def find_upcoming_birthdays(
    reports: list[Person], today: date, days_ahead: int
) -> list[Birthday]:
    """Reports whose next birthday falls within ``days_ahead`` days of ``today``."""
    upcoming = []
    for report in reports:
        if report.birthday is None:
            continue
        days_until = days_until_anniversary(report.birthday, today)
        if days_until <= days_ahead:
            upcoming.append(
                Birthday(
                    name=report.name,
                    occurs_on=next_anniversary(report.birthday, today),
                    days_until=days_until,
                )
            )
    return sorted(upcoming, key=lambda b: (b.days_until, b.name))


def birthday_deduplication_key(birthdays: list[Birthday]) -> str:
    return make_deduplication_key("birthday", (f"{b.name}:{b.days_until}" for b in birthdays))


def _format_day(d: date) -> str:
    return f"{d:%B} {d.day}"


class BirthdayNotificationJob(CronJob):
    id = "birthday-notification"
    name = "Birthday Notifications"
    description = "Notifies managers about upcoming birthdays of their reports"
    schedule = "0 9 * * *"  # Daily at 9 AM

    def get_default_config(self) -> dict[str, Any]:
        return {"daysAhead": 7}

    def validate_config(self, config: dict[str, Any]) -> bool:
        days_ahead = config.get("daysAhead")
        return (
            isinstance(days_ahead, int)
            and not isinstance(days_ahead, bool)
            and 0 < days_ahead <= MAX_DAYS_AHEAD
        )

    async def run(
        self, db: AsyncSession, context: ExecutionContext, result: ExecutionResult
    ) -> None:
        organization_id = context.organization_id
        days_ahead = self.resolved_config(context)["daysAhead"]
        today = context.started_at.date()

        managers = await self._managers_with_birthday_reports(db, organization_id)
        result.metadata["managersProcessed"] = len(managers)

        birthdays_found = 0
        for manager in managers:
            upcoming = find_upcoming_birthdays(manager.reports, today, days_ahead)
            if not upcoming:
                continue
            birthdays_found += len(upcoming)

            key = birthday_deduplication_key(upcoming)
            draft = self._build_draft(manager.user_id, organization_id, upcoming, days_ahead)
            await self.notify(db, context, draft, key, LOOKBACK_HOURS, result)

        result.metadata["upcomingBirthdaysFound"] = birthdays_found

    async def _managers_with_birthday_reports(
        self, db: AsyncSession, organization_id: str
    ) -> list[Person]:
        report = aliased(Person)
        reports_with_birthday = (
            exists().where(report.manager_id == Person.id, report.birthday.is_not(None))
        )
        stmt = (
            select(Person)
            .where(
                Person.organization_id == organization_id,
                Person.user_id.is_not(None),
                reports_with_birthday,
            )
            .options(selectinload(Person.reports))
            .order_by(Person.name)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    def _build_draft(
        self,
        user_id: str,
        organization_id: str,
        upcoming: list[Birthday],
        days_ahead: int,
    ) -> NotificationDraft:
        if len(upcoming) == 1:
            person = upcoming[0]
            if person.days_until == 0:
                title = "Birthday Today! 🎉"
                message = f"{person.name} has a birthday today!"
            elif person.days_until == 1:
                title = "Birthday Tomorrow! 🎂"
                message = f"{person.name} has a birthday tomorrow!"
            else:
                title = "Upcoming Birthday"
                message = (
                    f"{person.name} has a birthday in {person.days_until} days "
                    f"({_format_day(person.occurs_on)})"
                )
        else:
            names = ", ".join(b.name for b in upcoming)
            if any(b.days_until == 0 for b in upcoming):
                title = "Birthdays This Week! 🎉"
                message = f"Multiple team members have birthdays this week: {names}"
            else:
                title = "Upcoming Birthdays"
                message = (
                    f"Multiple team members have birthdays in the next {days_ahead} days: {names}"
                )

        return NotificationDraft(
            title=title,
            message=message,
            type=NotificationType.INFO,
            user_id=user_id,
            organization_id=organization_id,
            payload=BirthdayPayload(
                upcoming_birthdays=[
                    UpcomingBirthday(
                        name=b.name, birthday=b.occurs_on.isoformat(), days_until=b.days_until
                    )
                    for b in upcoming
                ]
            ),
        )
