"""Exceptions raised by the cron engine."""


class CronError(Exception):
    """Base class for cron engine errors."""


class JobNotFoundError(CronError):
    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job with ID '{job_id}' not found")


class JobConfigurationError(CronError):
    """Invalid job configuration or missing organization scope."""


class ExecutionRecordNotFoundError(CronError):
    def __init__(self, execution_id: str) -> None:
        self.execution_id = execution_id
        super().__init__(f"Execution record '{execution_id}' not found")


class InvalidExecutionTransitionError(CronError):
    """An execution record can only leave the running state once."""
