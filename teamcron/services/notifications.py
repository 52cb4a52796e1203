"""
Notification store.

The cron engine only needs two operations from the notification subsystem:
create one notification, and list a user's recent notifications in an
organization so jobs can check for an equivalent earlier notification.
Delivery (email, push) happens elsewhere.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamcron.core.logging import get_logger
from teamcron.models.notification import Notification
from teamcron.schemas.notification import NotificationDraft

logger = get_logger(__name__)


async def create_system_notification(db: AsyncSession, draft: NotificationDraft) -> Notification:
    """Persist a notification created by the system (no acting user).

    Commits immediately: every notification is an independent side effect
    that must survive a later failure in the same job run.
    """
    notification = Notification(
        title=draft.title,
        message=draft.message,
        type=draft.type.value,
        organization_id=draft.organization_id,
        user_id=draft.user_id,
        metadata_json=draft.to_metadata(),
    )
    db.add(notification)
    await db.commit()

    logger.bind(
        notification_id=notification.id,
        organization_id=draft.organization_id,
        user_id=draft.user_id,
    ).debug("system_notification_created")
    return notification


async def get_recent_user_notifications(
    db: AsyncSession,
    user_id: str | None,
    organization_id: str,
    since: datetime,
) -> list[Notification]:
    """Notifications addressed to ``user_id`` in ``organization_id`` since ``since``, newest first.

    A ``user_id`` of None selects the organization-wide notifications.
    """
    recipient = (
        Notification.user_id.is_(None) if user_id is None else Notification.user_id == user_id
    )
    stmt = (
        select(Notification)
        .where(
            recipient,
            Notification.organization_id == organization_id,
            Notification.created_at >= since,
        )
        .order_by(Notification.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
