from teamcron.schemas.cron import (
    CronTriggerResponse,
    ExecutionResponse,
    ExecutionStatsResponse,
    JobInfoResponse,
    JobRunResultResponse,
    JobStatsResponse,
    RunSummaryResponse,
)
from teamcron.schemas.notification import (
    BirthdayPayload,
    InactivityPayload,
    NotificationDraft,
    NotificationType,
    OverdueTasksPayload,
)

__all__ = [
    "CronTriggerResponse",
    "ExecutionResponse",
    "ExecutionStatsResponse",
    "JobInfoResponse",
    "JobRunResultResponse",
    "JobStatsResponse",
    "RunSummaryResponse",
    "BirthdayPayload",
    "InactivityPayload",
    "NotificationDraft",
    "NotificationType",
    "OverdueTasksPayload",
]
