"""Overdue tasks job - reminds assignees about tasks past their due date."""

from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from teamcron.core.datetime_utils import start_of_day
from teamcron.cron.base import CronJob, make_deduplication_key
from teamcron.cron.types import ExecutionContext, ExecutionResult
from teamcron.models.person import Person, PersonStatus
from teamcron.models.task import TERMINAL_TASK_STATUSES, Initiative, Objective, Task
from teamcron.schemas.notification import (
    NotificationDraft,
    NotificationType,
    OverdueTask,
    OverdueTasksPayload,
)

LOOKBACK_HOURS = 24


def overdue_tasks_deduplication_key(tasks: list[Task]) -> str:
    return make_deduplication_key("overdue-tasks", (t.id for t in tasks))


class OverdueTasksNotificationJob(CronJob):
    id = "overdue-tasks-notification"
    name = "Overdue Tasks Notification"
    description = "Notifies users about tasks that have passed their due dates"
    schedule = "0 9 * * *"  # Daily at 9 AM

    def get_default_config(self) -> dict[str, Any]:
        return {}

    async def run(
        self, db: AsyncSession, context: ExecutionContext, result: ExecutionResult
    ) -> None:
        organization_id = context.organization_id

        overdue = await self._overdue_tasks(db, organization_id, context)
        result.metadata["overdueTasksFound"] = len(overdue)

        tasks_by_user: dict[str, list[Task]] = {}
        for task in overdue:
            tasks_by_user.setdefault(task.assignee.user_id, []).append(task)
        result.metadata["usersWithOverdueTasks"] = len(tasks_by_user)

        for user_id, tasks in tasks_by_user.items():
            key = overdue_tasks_deduplication_key(tasks)
            draft = self._build_draft(user_id, organization_id, tasks)
            await self.notify(db, context, draft, key, LOOKBACK_HOURS, result)

    async def _overdue_tasks(
        self, db: AsyncSession, organization_id: str, context: ExecutionContext
    ) -> list[Task]:
        """
        Tasks that are overdue in this organization.

        A task is overdue when its due date is before today, it is not done
        or dropped, and it is assigned to an active person with a linked
        user. It belongs to the organization through its initiative or
        through its objective's initiative.
        """
        today = start_of_day(context.started_at)
        objective_initiative = aliased(Initiative)

        stmt = (
            select(Task)
            .join(Person, Task.assignee_id == Person.id)
            .outerjoin(Initiative, Task.initiative_id == Initiative.id)
            .outerjoin(Objective, Task.objective_id == Objective.id)
            .outerjoin(objective_initiative, Objective.initiative_id == objective_initiative.id)
            .where(
                Task.due_date < today,
                Task.status.not_in(TERMINAL_TASK_STATUSES),
                Person.organization_id == organization_id,
                Person.status == PersonStatus.ACTIVE.value,
                Person.user_id.is_not(None),
                or_(
                    Initiative.organization_id == organization_id,
                    objective_initiative.organization_id == organization_id,
                ),
            )
            .options(selectinload(Task.assignee))
            .order_by(Task.due_date, Task.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().unique().all())

    def _build_draft(
        self, user_id: str, organization_id: str, tasks: list[Task]
    ) -> NotificationDraft:
        if len(tasks) == 1:
            title = "Overdue Task"
            message = f'Task "{tasks[0].title}" is overdue'
        else:
            title = "Overdue Tasks"
            message = f"You have {len(tasks)} overdue task(s)"

        return NotificationDraft(
            title=title,
            message=message,
            type=NotificationType.WARNING,
            user_id=user_id,
            organization_id=organization_id,
            payload=OverdueTasksPayload(
                tasks=[
                    OverdueTask(id=t.id, title=t.title, due_date=t.due_date.isoformat())
                    for t in tasks
                ]
            ),
        )
