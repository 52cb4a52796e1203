"""Notification drafts and the typed payloads cron jobs attach to them."""

import enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

DEDUPLICATION_KEY_FIELD = "deduplicationKey"
JOB_ID_FIELD = "jobId"


class NotificationType(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


# --- Notification payloads ---
#
# Each job attaches a typed payload describing the condition it reported.
# Payloads are flattened into the notification's metadata bag next to the
# deduplication key and job id.


class UpcomingBirthday(BaseModel):
    name: str
    birthday: str  # ISO date of the upcoming occurrence
    days_until: int = Field(serialization_alias="daysUntil")


class BirthdayPayload(BaseModel):
    kind: Literal["birthday"] = "birthday"
    upcoming_birthdays: list[UpcomingBirthday] = Field(serialization_alias="upcomingBirthdays")


class InactiveReport(BaseModel):
    name: str
    last_activity: str | None = Field(default=None, serialization_alias="lastActivity")
    activity_type: str | None = Field(default=None, serialization_alias="activityType")


class InactivityPayload(BaseModel):
    kind: Literal["inactivity"] = "inactivity"
    days_back: int = Field(serialization_alias="daysBack")
    inactive_reports: list[InactiveReport] = Field(serialization_alias="inactiveReports")


class OverdueTask(BaseModel):
    id: str
    title: str
    due_date: str = Field(serialization_alias="dueDate")


class OverdueTasksPayload(BaseModel):
    kind: Literal["overdue-tasks"] = "overdue-tasks"
    tasks: list[OverdueTask]

    @property
    def task_ids(self) -> list[str]:
        return [t.id for t in self.tasks]


NotificationPayload = Annotated[
    BirthdayPayload | InactivityPayload | OverdueTasksPayload,
    Field(discriminator="kind"),
]


class NotificationDraft(BaseModel):
    """A notification a job wants to create, before it is persisted."""

    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    organization_id: str
    user_id: str | None = None  # None = organization-wide
    payload: NotificationPayload | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_metadata(self) -> dict[str, Any]:
        """Flatten payload and free-form metadata into the stored JSON bag."""
        data: dict[str, Any] = {}
        if self.payload is not None:
            data.update(self.payload.model_dump(mode="json", by_alias=True))
            if isinstance(self.payload, OverdueTasksPayload):
                data["overdueTaskIds"] = self.payload.task_ids
                data["taskCount"] = len(self.payload.tasks)
        data.update(self.metadata)
        return data
