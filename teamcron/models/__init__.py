from teamcron.models.activity import Feedback, OneOnOne
from teamcron.models.base import Base
from teamcron.models.job_execution import CronJobExecution, ExecutionStatus
from teamcron.models.notification import Notification
from teamcron.models.organization import Organization, User
from teamcron.models.person import Person, PersonStatus
from teamcron.models.task import Initiative, Objective, Task, TaskStatus

__all__ = [
    "Base",
    "Organization",
    "User",
    "Person",
    "PersonStatus",
    "Initiative",
    "Objective",
    "Task",
    "TaskStatus",
    "OneOnOne",
    "Feedback",
    "Notification",
    "CronJobExecution",
    "ExecutionStatus",
]
