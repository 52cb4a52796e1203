"""Tests for the overdue tasks notification job."""

from datetime import datetime, timedelta

import pytest

from teamcron.cron.jobs.overdue_tasks import overdue_tasks_deduplication_key
from teamcron.models.person import PersonStatus
from teamcron.models.task import Task, TaskStatus

pytestmark = pytest.mark.asyncio

JOB_ID = "overdue-tasks-notification"
RUN_AT = datetime(2026, 6, 9, 9, 0)
YESTERDAY = datetime(2026, 6, 8, 17, 0)


@pytest.fixture
def org_setup(organization_factory, person_factory, initiative_factory):
    """An organization with an initiative and a notifiable assignee."""

    async def _setup(name: str = "Acme"):
        org = await organization_factory(name)
        initiative = await initiative_factory(org)
        assignee = await person_factory(org, "Riley", with_user=True)
        return org, initiative, assignee

    return _setup


class TestDeduplicationKey:
    def test_sorted_task_ids(self):
        tasks = [Task(id="t-2", title="b"), Task(id="t-1", title="a")]
        assert overdue_tasks_deduplication_key(tasks) == "overdue-tasks:t-1|t-2"


class TestOverdueTasksJob:
    """Tests for running the job against the database."""

    async def test_single_overdue_task(self, run_job, org_setup, task_factory, fetch_notifications):
        """Should warn the assignee about one task due before today."""
        org, initiative, assignee = await org_setup()
        task = await task_factory(
            "Quarterly report", assignee=assignee, initiative=initiative, due_date=YESTERDAY
        )

        result = await run_job(JOB_ID, org.id, started_at=RUN_AT)

        assert result.success is True
        assert result.notifications_created == 1
        assert result.metadata["overdueTasksFound"] == 1
        assert result.metadata["usersWithOverdueTasks"] == 1

        [notification] = await fetch_notifications(org.id)
        assert notification.user_id == assignee.user_id
        assert notification.type == "warning"
        assert notification.title == "Overdue Task"
        assert notification.message == 'Task "Quarterly report" is overdue'
        assert notification.metadata_json["deduplicationKey"] == f"overdue-tasks:{task.id}"
        assert notification.metadata_json["overdueTaskIds"] == [task.id]
        assert notification.metadata_json["taskCount"] == 1

    async def test_multiple_tasks_batched_per_user(
        self, run_job, org_setup, person_factory, task_factory, fetch_notifications
    ):
        """Each assignee gets one notification covering all their overdue tasks."""
        org, initiative, assignee = await org_setup()
        other = await person_factory(org, "Sam", with_user=True)
        first = await task_factory("A", assignee=assignee, initiative=initiative, due_date=YESTERDAY)
        second = await task_factory(
            "B", assignee=assignee, initiative=initiative, due_date=YESTERDAY - timedelta(days=3)
        )
        await task_factory("C", assignee=other, initiative=initiative, due_date=YESTERDAY)

        result = await run_job(JOB_ID, org.id, started_at=RUN_AT)

        assert result.notifications_created == 2
        assert result.metadata["overdueTasksFound"] == 3
        assert result.metadata["usersWithOverdueTasks"] == 2

        [mine] = await fetch_notifications(org.id, user_id=assignee.user_id)
        assert mine.title == "Overdue Tasks"
        assert mine.message == "You have 2 overdue task(s)"
        assert mine.metadata_json["deduplicationKey"] == (
            "overdue-tasks:" + "|".join(sorted([first.id, second.id]))
        )

    async def test_excluded_tasks(
        self, run_job, org_setup, person_factory, task_factory, fetch_notifications
    ):
        """Done, dropped, due-today, undated and unassignable tasks are not overdue."""
        org, initiative, assignee = await org_setup()
        no_user = await person_factory(org, "Casey", with_user=False)
        departed = await person_factory(
            org, "Drew", with_user=True, status=PersonStatus.INACTIVE
        )
        await task_factory(
            "done", assignee=assignee, initiative=initiative, due_date=YESTERDAY,
            status=TaskStatus.DONE,
        )
        await task_factory(
            "dropped", assignee=assignee, initiative=initiative, due_date=YESTERDAY,
            status=TaskStatus.DROPPED,
        )
        await task_factory(
            "due today", assignee=assignee, initiative=initiative,
            due_date=datetime(2026, 6, 9, 0, 30),
        )
        await task_factory("undated", assignee=assignee, initiative=initiative)
        await task_factory("nobody", initiative=initiative, due_date=YESTERDAY)
        await task_factory("no user", assignee=no_user, initiative=initiative, due_date=YESTERDAY)
        await task_factory("departed", assignee=departed, initiative=initiative, due_date=YESTERDAY)

        result = await run_job(JOB_ID, org.id, started_at=RUN_AT)

        assert result.notifications_created == 0
        assert result.metadata["overdueTasksFound"] == 0
        assert await fetch_notifications(org.id) == []

    async def test_task_reached_through_objective(
        self, run_job, org_setup, objective_factory, task_factory, fetch_notifications
    ):
        """Tasks under an objective belong to the objective's initiative's organization."""
        org, initiative, assignee = await org_setup()
        objective = await objective_factory(initiative)
        await task_factory("via objective", assignee=assignee, objective=objective, due_date=YESTERDAY)

        result = await run_job(JOB_ID, org.id, started_at=RUN_AT)

        assert result.notifications_created == 1

    async def test_task_without_organization_link_is_ignored(
        self, run_job, org_setup, task_factory, fetch_notifications
    ):
        """A task with neither initiative nor objective has no organization."""
        org, _, assignee = await org_setup()
        await task_factory("orphan", assignee=assignee, due_date=YESTERDAY)

        result = await run_job(JOB_ID, org.id, started_at=RUN_AT)

        assert result.notifications_created == 0

    async def test_other_organizations_tasks(self, run_job, org_setup, task_factory):
        """Tasks under another organization's initiative are not reported."""
        org, _, assignee = await org_setup("Acme")
        _, other_initiative, _ = await org_setup("Globex")
        await task_factory(
            "foreign", assignee=assignee, initiative=other_initiative, due_date=YESTERDAY
        )

        result = await run_job(JOB_ID, org.id, started_at=RUN_AT)

        assert result.notifications_created == 0

    async def test_rerun_suppressed_until_set_changes(
        self, run_job, org_setup, task_factory, fetch_notifications
    ):
        """The same overdue set isn't repeated; a newly overdue task is."""
        org, initiative, assignee = await org_setup()
        await task_factory("A", assignee=assignee, initiative=initiative, due_date=YESTERDAY)

        first = await run_job(JOB_ID, org.id, started_at=RUN_AT)
        repeat = await run_job(JOB_ID, org.id, started_at=RUN_AT + timedelta(hours=1))
        await task_factory("B", assignee=assignee, initiative=initiative, due_date=YESTERDAY)
        changed = await run_job(JOB_ID, org.id, started_at=RUN_AT + timedelta(hours=2))

        assert (first.notifications_created, repeat.notifications_created) == (1, 0)
        assert changed.notifications_created == 1
        assert len(await fetch_notifications(org.id)) == 2
