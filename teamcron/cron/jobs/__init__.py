from teamcron.cron.jobs.activity import ActivityMonitoringJob
from teamcron.cron.jobs.birthday import BirthdayNotificationJob
from teamcron.cron.jobs.overdue_tasks import OverdueTasksNotificationJob

__all__ = [
    "ActivityMonitoringJob",
    "BirthdayNotificationJob",
    "OverdueTasksNotificationJob",
    "builtin_jobs",
]


def builtin_jobs() -> list:
    """Fresh instances of every job shipped with teamcron, in run order."""
    return [
        BirthdayNotificationJob(),
        ActivityMonitoringJob(),
        OverdueTasksNotificationJob(),
    ]
