from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamcron.core.datetime_utils import utc_now
from teamcron.models.base import Base, TimestampMixin, new_id

if TYPE_CHECKING:
    from teamcron.models.person import Person


class TaskStatus(str, enum.Enum):
    TODO = "todo"
    DOING = "doing"
    BLOCKED = "blocked"
    DONE = "done"
    DROPPED = "dropped"


# Statuses that end a task's lifecycle; such tasks are never overdue
TERMINAL_TASK_STATUSES = (TaskStatus.DONE.value, TaskStatus.DROPPED.value)


class Initiative(Base, TimestampMixin):
    __tablename__ = "initiatives"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(255))

    objectives: Mapped[list[Objective]] = relationship(back_populates="initiative")


class Objective(Base, TimestampMixin):
    __tablename__ = "objectives"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    initiative_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("initiatives.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(255))

    initiative: Mapped[Initiative] = relationship(back_populates="objectives")


class Task(Base, TimestampMixin):
    """Unit of work, optionally assigned and optionally due."""

    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(20), default=TaskStatus.TODO.value, index=True)
    due_date: Mapped[datetime | None] = mapped_column(default=None, index=True)
    assignee_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("people.id", ondelete="SET NULL"), index=True
    )
    initiative_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("initiatives.id", ondelete="SET NULL"), index=True
    )
    objective_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("objectives.id", ondelete="SET NULL"), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)

    # Relationships
    assignee: Mapped[Person | None] = relationship()
    initiative: Mapped[Initiative | None] = relationship()
    objective: Mapped[Objective | None] = relationship()

    def __repr__(self) -> str:
        return f"<Task {self.title[:50]}>"
