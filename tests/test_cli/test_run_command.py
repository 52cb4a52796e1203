"""Tests for the `teamcron run` command output and exit codes."""

from unittest.mock import patch

from typer.testing import CliRunner

from teamcron.cli import app
from teamcron.cron.jobs import builtin_jobs
from teamcron.cron.registry import JobRegistry
from teamcron.cron.runner import JobRunOutcome, RunSummary

cli = CliRunner()


class FakeRunner:
    """Stands in for CronRunner, replaying canned outcomes."""

    def __init__(self, outcomes: list[JobRunOutcome] | None = None, error: Exception | None = None):
        self.registry = JobRegistry(builtin_jobs())
        self.outcomes = outcomes or []
        self.error = error
        self.calls: list[dict] = []

    async def run(self, job_id=None, organization_id=None, dry_run=False, on_outcome=None):
        self.calls.append({"job_id": job_id, "organization_id": organization_id, "dry_run": dry_run})
        if self.error:
            raise self.error
        for outcome in self.outcomes:
            if on_outcome:
                on_outcome(outcome)
        return RunSummary(results=list(self.outcomes), dry_run=dry_run)


def _outcomes() -> list[JobRunOutcome]:
    return [
        JobRunOutcome(
            job_id="birthday-notification",
            job_name="Birthday Notifications",
            organization_id="org-1",
            success=True,
            notifications_created=2,
            metadata={"managersProcessed": 1},
        ),
        JobRunOutcome(
            job_id="activity-monitoring",
            job_name="Activity Monitoring",
            organization_id="org-1",
            success=False,
            notifications_created=0,
            error="database went away",
        ),
    ]


def _invoke(fake: FakeRunner, *args: str):
    with (
        patch("teamcron.cron.create_runner", return_value=fake),
        patch("teamcron.core.logging.setup_logging"),
    ):
        return cli.invoke(app, ["run", *args])


class TestRunCommand:
    """Tests for `teamcron run`."""

    def test_one_line_per_pair(self):
        """Should print a status line per (job, organization) and exit 0 despite failures."""
        result = _invoke(FakeRunner(_outcomes()))

        assert result.exit_code == 0
        assert "✅ birthday-notification@org-1: 2 notifications created" in result.output
        assert "❌ activity-monitoring@org-1: 0 notifications created" in result.output
        assert "Error: database went away" in result.output
        assert "Metadata" not in result.output

    def test_verbose_adds_metadata_and_summary(self):
        result = _invoke(FakeRunner(_outcomes()), "--verbose")

        assert result.exit_code == 0
        assert '"managersProcessed": 1' in result.output
        assert "2 executions, 1 succeeded, 1 failed, 2 notifications created" in result.output

    def test_passes_filters(self):
        """--job, --org and --dry-run should reach the runner."""
        fake = FakeRunner()

        result = _invoke(fake, "--job", "activity-monitoring", "--org", "org-9", "--dry-run")

        assert result.exit_code == 0
        assert fake.calls == [
            {"job_id": "activity-monitoring", "organization_id": "org-9", "dry_run": True}
        ]

    def test_unknown_job_exits_1(self):
        """An unknown --job should list the available jobs and exit 1."""
        fake = FakeRunner()

        result = _invoke(fake, "--job", "nope")

        assert result.exit_code == 1
        assert "Job with ID 'nope' not found" in result.output
        assert "birthday-notification" in result.output
        assert fake.calls == []

    def test_top_level_error_exits_1(self):
        """An error outside the jobs should exit 1."""
        result = _invoke(FakeRunner(error=RuntimeError("db unreachable")))

        assert result.exit_code == 1
        assert "db unreachable" in result.output
