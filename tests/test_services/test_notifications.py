"""Tests for the notification store used by cron jobs."""

from datetime import timedelta

import pytest

from teamcron.core.datetime_utils import utc_now
from teamcron.schemas.notification import (
    NotificationDraft,
    NotificationType,
    OverdueTask,
    OverdueTasksPayload,
)
from teamcron.services.notifications import (
    create_system_notification,
    get_recent_user_notifications,
)
from teamcron.services.organizations import get_organization, list_organizations

pytestmark = pytest.mark.asyncio


class TestCreateSystemNotification:
    """Tests for create_system_notification."""

    async def test_persists_payload_and_metadata(
        self, db_session, organization_factory, user_factory, fetch_notifications
    ):
        """The payload is flattened into the metadata bag next to free-form keys."""
        org = await organization_factory()
        user = await user_factory(org)
        draft = NotificationDraft(
            title="Overdue Task",
            message='Task "A" is overdue',
            type=NotificationType.WARNING,
            organization_id=org.id,
            user_id=user.id,
            payload=OverdueTasksPayload(
                tasks=[OverdueTask(id="t-1", title="A", due_date="2026-06-08T17:00:00")]
            ),
            metadata={"deduplicationKey": "overdue-tasks:t-1"},
        )

        notification = await create_system_notification(db_session, draft)

        assert notification.id
        [stored] = await fetch_notifications(org.id)
        assert stored.type == "warning"
        assert stored.metadata_json["deduplicationKey"] == "overdue-tasks:t-1"
        assert stored.metadata_json["kind"] == "overdue-tasks"
        assert stored.metadata_json["tasks"] == [
            {"id": "t-1", "title": "A", "dueDate": "2026-06-08T17:00:00"}
        ]
        assert stored.metadata_json["overdueTaskIds"] == ["t-1"]
        assert stored.metadata_json["taskCount"] == 1


class TestGetRecentUserNotifications:
    """Tests for get_recent_user_notifications."""

    async def test_window_scope_and_order(
        self, db_session, organization_factory, user_factory, notification_factory
    ):
        """Should return only this user's notifications in this org since the cutoff, newest first."""
        org = await organization_factory("Acme")
        other_org = await organization_factory("Globex")
        user = await user_factory(org)
        other_user = await user_factory(org)
        now = utc_now()
        older = await notification_factory(org.id, user.id, created_at=now - timedelta(hours=5))
        newer = await notification_factory(org.id, user.id, created_at=now - timedelta(hours=1))
        await notification_factory(org.id, user.id, created_at=now - timedelta(hours=30))
        await notification_factory(org.id, other_user.id)
        await notification_factory(other_org.id, user.id)
        await notification_factory(org.id, None)

        recent = await get_recent_user_notifications(
            db_session, user.id, org.id, now - timedelta(hours=24)
        )

        assert [n.id for n in recent] == [newer.id, older.id]

    async def test_organization_wide_only(
        self, db_session, organization_factory, user_factory, notification_factory
    ):
        """A None user_id selects notifications addressed to the whole organization."""
        org = await organization_factory()
        user = await user_factory(org)
        broadcast = await notification_factory(org.id, None)
        await notification_factory(org.id, user.id)

        recent = await get_recent_user_notifications(
            db_session, None, org.id, utc_now() - timedelta(hours=24)
        )

        assert [n.id for n in recent] == [broadcast.id]


class TestOrganizations:
    """Tests for organization listing."""

    async def test_list_is_oldest_first(self, db_session, organization_factory):
        now = utc_now()
        newer = await organization_factory("Globex", created_at=now)
        older = await organization_factory("Acme", created_at=now - timedelta(days=3))

        organizations = await list_organizations(db_session)

        assert [o.id for o in organizations] == [older.id, newer.id]

    async def test_get_organization(self, db_session, organization_factory):
        org = await organization_factory()

        assert (await get_organization(db_session, org.id)).id == org.id
        assert await get_organization(db_session, "missing") is None
