"""Types shared by the cron engine, its jobs, and its callers."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class ExecutionContext:
    """Everything a job needs to know about one invocation."""

    config: dict[str, Any]
    started_at: datetime
    organization_id: str | None = None
    dry_run: bool = False


@dataclass
class ExecutionResult:
    """Outcome of one job invocation.

    ``notifications_created`` is meaningful on failure too: notifications
    committed before the failure point are not rolled back.
    """

    success: bool = True
    notifications_created: int = 0
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: str, **metadata: Any) -> "ExecutionResult":
        return cls(success=False, error=error, metadata=dict(metadata))

    def fail(self, error: str) -> "ExecutionResult":
        """Mark this result failed, keeping the count and metadata gathered so far."""
        self.success = False
        self.error = error
        return self
