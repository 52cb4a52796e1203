"""
Job contract shared by every scheduled job.

A job is a stateless object: constructed once, registered, and invoked many
times. Each invocation is scoped to one organization and may create
notifications. Re-running a job against an unchanged condition must not
notify again within the job's lookback window; ``should_notify`` enforces
that by looking for an earlier notification carrying the same
deduplication key.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy.ext.asyncio import AsyncSession

from teamcron.core.datetime_utils import get_cutoff
from teamcron.core.logging import get_logger
from teamcron.cron.errors import JobConfigurationError
from teamcron.cron.types import ExecutionContext, ExecutionResult
from teamcron.schemas.notification import (
    DEDUPLICATION_KEY_FIELD,
    JOB_ID_FIELD,
    NotificationDraft,
)
from teamcron.services.notifications import (
    create_system_notification,
    get_recent_user_notifications,
)

logger = get_logger(__name__)


def make_deduplication_key(prefix: str, parts: Iterable[str]) -> str:
    """Build a key from the semantic content of a condition.

    Parts are sorted so the key does not depend on query order.
    """
    return f"{prefix}:{'|'.join(sorted(parts))}"


class CronJob(ABC):
    """Abstract base class for scheduled jobs."""

    id: ClassVar[str]
    name: ClassVar[str]
    description: ClassVar[str] = ""
    schedule: ClassVar[str] = ""  # Informational cron expression; invocation is external
    requires_organization: ClassVar[bool] = True

    async def execute(self, db: AsyncSession, context: ExecutionContext) -> ExecutionResult:
        """Run the job and report its outcome.

        Never raises. Unexpected errors become a failed result that keeps
        the count of notifications already committed.
        """
        result = ExecutionResult()
        try:
            if self.requires_organization and not context.organization_id:
                raise JobConfigurationError("Organization ID is required")
            await self.run(db, context, result)
        except Exception as e:
            await db.rollback()
            logger.bind(
                job_id=self.id,
                organization_id=context.organization_id,
                notifications_created=result.notifications_created,
                error=str(e),
            ).error("cron_job_failed")
            result.fail(str(e) or type(e).__name__)
        return result

    @abstractmethod
    async def run(
        self, db: AsyncSession, context: ExecutionContext, result: ExecutionResult
    ) -> None:
        """Job body. Record progress on ``result`` as notifications are created."""

    def validate_config(self, config: dict[str, Any]) -> bool:
        return True

    def get_default_config(self) -> dict[str, Any]:
        return {}

    async def should_notify(
        self,
        db: AsyncSession,
        user_id: str | None,
        organization_id: str,
        deduplication_key: str,
        lookback_hours: int,
        now: datetime | None = None,
    ) -> bool:
        """
        Check whether an equivalent notification was already sent recently.

        Args:
            db: Database session
            user_id: Recipient user, None for organization-wide notifications
            organization_id: Organization scope
            deduplication_key: Key describing the condition being reported
            lookback_hours: Size of the suppression window
            now: End of the window, defaults to the current UTC time

        Returns:
            False if a notification with the same key was created for this
            user in this organization within the window, True otherwise.
        """
        since = get_cutoff(hours=lookback_hours, now=now)
        recent = await get_recent_user_notifications(db, user_id, organization_id, since)

        for notification in recent:
            if (notification.metadata_json or {}).get(DEDUPLICATION_KEY_FIELD) == deduplication_key:
                logger.bind(
                    job_id=self.id,
                    user_id=user_id,
                    deduplication_key=deduplication_key,
                ).debug("cron_notification_suppressed")
                return False
        return True

    def build_notification(
        self, draft: NotificationDraft, deduplication_key: str
    ) -> NotificationDraft:
        """Return a copy of ``draft`` stamped with the key and this job's id."""
        metadata = {
            **draft.metadata,
            DEDUPLICATION_KEY_FIELD: deduplication_key,
            JOB_ID_FIELD: self.id,
        }
        return draft.model_copy(update={"metadata": metadata})

    async def notify(
        self,
        db: AsyncSession,
        context: ExecutionContext,
        draft: NotificationDraft,
        deduplication_key: str,
        lookback_hours: int,
        result: ExecutionResult,
    ) -> bool:
        """Create ``draft`` unless an equivalent notification fired within the window.

        Returns True when the notification was created (or would have been,
        in dry-run mode).
        """
        if not await self.should_notify(
            db,
            draft.user_id,
            draft.organization_id,
            deduplication_key,
            lookback_hours,
            now=context.started_at,
        ):
            return False

        stamped = self.build_notification(draft, deduplication_key)

        if context.dry_run:
            result.metadata["wouldNotify"] = result.metadata.get("wouldNotify", 0) + 1
            logger.bind(
                job_id=self.id,
                user_id=stamped.user_id,
                title=stamped.title,
                deduplication_key=deduplication_key,
            ).info("cron_dry_run_notification")
            return True

        await create_system_notification(db, stamped)
        result.notifications_created += 1
        return True

    def resolved_config(self, context: ExecutionContext) -> dict[str, Any]:
        """Context config, falling back to defaults for missing keys."""
        return {**self.get_default_config(), **(context.config or {})}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"
