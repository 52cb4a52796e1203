from __future__ import annotations

import enum
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamcron.models.base import Base, TimestampMixin, new_id

if TYPE_CHECKING:
    from teamcron.models.organization import Organization, User


class PersonStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Person(Base, TimestampMixin):
    """A member of an organization's people directory."""

    __tablename__ = "people"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), default=PersonStatus.ACTIVE.value)
    birthday: Mapped[date | None] = mapped_column(Date, default=None)
    manager_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("people.id", ondelete="SET NULL"), index=True
    )
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), unique=True
    )

    # Relationships
    organization: Mapped[Organization] = relationship(back_populates="people")
    manager: Mapped[Person | None] = relationship(
        back_populates="reports", remote_side="Person.id"
    )
    reports: Mapped[list[Person]] = relationship(back_populates="manager")
    user: Mapped[User | None] = relationship(back_populates="person")

    @property
    def is_active(self) -> bool:
        return self.status == PersonStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<Person {self.name}>"
