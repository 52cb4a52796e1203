from __future__ import annotations

from sqlalchemy import JSON, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from teamcron.models.base import Base, TimestampMixin, new_id


class Notification(Base, TimestampMixin):
    """In-app notification.

    ``user_id`` of None means the notification is organization-wide.
    ``metadata_json`` is an opaque bag; notifications created by cron jobs
    carry ``deduplicationKey`` and ``jobId`` in it.
    """

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(20), default="info")
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    metadata_json: Mapped[dict] = mapped_column("metadata", JSON, default=dict)

    def __repr__(self) -> str:
        return f"<Notification {self.title[:50]}>"
