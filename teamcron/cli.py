"""
teamcron CLI - Command line interface for running scheduled jobs.

Usage:
    teamcron --help                         Show all commands
    teamcron run                            Run all jobs for all organizations
    teamcron run --job birthday-notification
    teamcron run --org <org id> --verbose   Run all jobs for one organization
    teamcron run --dry-run                  Preview without creating notifications
    teamcron jobs                           List registered jobs
    teamcron executions                     Show recent execution records
    teamcron stats                          Show execution statistics
    teamcron cleanup                        Delete old execution records
    teamcron stale                          List executions stuck in 'running'
"""

import asyncio
import json
from typing import Any

import typer

app = typer.Typer(
    name="teamcron",
    help="teamcron CLI - Scheduled job runner",
    no_args_is_help=True,
)


# --- Printer helpers ---


def _print_success(message: str) -> None:
    """Print a success message."""
    typer.echo(f"  ✅ {message}")


def _print_error(message: str) -> None:
    """Print an error message to stderr."""
    typer.echo(f"❌ {message}", err=True)


def _format_metadata(metadata: dict[str, Any]) -> str:
    return json.dumps(metadata, default=str, sort_keys=True)


def _print_outcome(outcome, verbose: bool) -> None:
    """One line per (job, organization) pair; verbose adds the metadata."""
    status = "✅" if outcome.success else "❌"
    typer.echo(f"{status} {outcome.label}: {outcome.notifications_created} notifications created")
    if verbose and outcome.metadata:
        typer.echo(f"  Metadata: {_format_metadata(outcome.metadata)}")
    if outcome.error:
        typer.echo(f"  Error: {outcome.error}")


@app.command()
def run(
    job: str | None = typer.Option(None, "--job", "-j", help="Run a specific job by id"),
    org: str | None = typer.Option(None, "--org", "-o", help="Run for one organization only"),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Report what would be sent without creating notifications"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed output"),
):
    """Run scheduled jobs once.

    Individual job failures are reported but don't change the exit code;
    only an error outside the jobs (e.g. the database is unreachable) exits 1.
    """
    from teamcron.core.logging import setup_logging
    from teamcron.cron import create_runner

    setup_logging(verbose=verbose)
    runner = create_runner()

    if job and job not in runner.registry:
        _print_error(f"Job with ID '{job}' not found")
        typer.echo("Available jobs:", err=True)
        for registered in runner.registry.get_all_jobs():
            typer.echo(f"  - {registered.id}: {registered.name}", err=True)
        raise typer.Exit(1)

    if verbose:
        typer.echo("Starting cron job execution...")
        typer.echo(f"  job={job or 'all'} org={org or 'all'} dry_run={dry_run}")

    try:
        summary = asyncio.run(
            runner.run(
                job_id=job,
                organization_id=org,
                dry_run=dry_run,
                on_outcome=lambda outcome: _print_outcome(outcome, verbose),
            )
        )
    except Exception as e:
        _print_error(f"Error during cron job execution: {e}")
        raise typer.Exit(1)

    if verbose:
        typer.echo(
            f"\nSummary: {summary.total_jobs} executions, "
            f"{summary.successful_jobs} succeeded, {summary.failed_jobs} failed, "
            f"{summary.total_notifications} notifications created"
        )
        if dry_run:
            typer.echo("Dry run: no notifications were created")

    typer.echo("Cron job execution completed successfully")


@app.command()
def jobs():
    """List registered jobs."""
    from teamcron.config import get_config
    from teamcron.cron import create_registry

    config = get_config()
    registry = create_registry(config)

    for job in registry.get_all_jobs():
        state = "disabled" if job.id in config.cron.disabled_jobs else "enabled"
        typer.echo(f"{job.id} ({state})")
        typer.echo(f"  {job.name} - {job.description}")
        typer.echo(f"  schedule: {job.schedule}")
        typer.echo(f"  config: {_format_metadata(registry.build_config(job))}")


@app.command()
def executions(
    org: str | None = typer.Option(None, "--org", "-o", help="Filter by organization id"),
    job: str | None = typer.Option(None, "--job", "-j", help="Filter by job id"),
    limit: int = typer.Option(20, "--limit", "-l", help="Number of records to show"),
):
    """Show recent execution records, newest first."""
    from teamcron.core.database import AsyncSessionLocal
    from teamcron.core.logging import setup_logging
    from teamcron.cron.execution_service import ExecutionService

    setup_logging()

    async def fetch():
        async with AsyncSessionLocal() as db:
            return await ExecutionService(db).get_recent_executions(
                organization_id=org, limit=limit, job_id=job
            )

    records = asyncio.run(fetch())
    if not records:
        typer.echo("No executions found")
        return

    for record in records:
        duration = f"{record.duration_seconds:.1f}s" if record.duration_seconds is not None else "-"
        typer.echo(
            f"{record.started_at:%Y-%m-%d %H:%M:%S} {record.status.value:<9} "
            f"{record.job_id}@{record.organization_id} "
            f"notifications={record.notifications_created} duration={duration}"
        )
        if record.error:
            typer.echo(f"  Error: {record.error}")


@app.command()
def stats(
    org: str | None = typer.Option(None, "--org", "-o", help="Filter by organization id"),
    days: int = typer.Option(7, "--days", "-d", help="Reporting window in days"),
):
    """Show execution statistics."""
    from teamcron.core.database import AsyncSessionLocal
    from teamcron.core.logging import setup_logging
    from teamcron.cron.execution_service import ExecutionService

    setup_logging()

    async def fetch():
        async with AsyncSessionLocal() as db:
            return await ExecutionService(db).get_execution_stats(
                organization_id=org, days_back=days
            )

    result = asyncio.run(fetch())

    typer.echo(f"\n📊 Executions in the last {result.days_back} days")
    typer.echo(f"  Total:         {result.total_executions}")
    typer.echo(f"  Completed:     {result.completed}")
    typer.echo(f"  Failed:        {result.failed}")
    typer.echo(f"  Running:       {result.running}")
    typer.echo(f"  Success rate:  {result.success_rate:.1%}")
    typer.echo(f"  Notifications: {result.total_notifications}")

    for job_stats in result.by_job:
        typer.echo(
            f"  - {job_stats.job_id}: {job_stats.completed}/{job_stats.total} completed, "
            f"{job_stats.notifications} notifications"
        )


@app.command()
def cleanup(
    days: int | None = typer.Option(
        None, "--days", "-d", help="Keep records newer than this (defaults to config)"
    ),
):
    """Delete execution records older than the retention period."""
    from teamcron.config import get_config
    from teamcron.core.database import AsyncSessionLocal
    from teamcron.core.logging import setup_logging
    from teamcron.cron.execution_service import ExecutionService

    setup_logging()
    days_to_keep = get_config().cron.retention_days if days is None else days

    async def purge() -> int:
        async with AsyncSessionLocal() as db:
            return await ExecutionService(db).cleanup_old_executions(days_to_keep=days_to_keep)

    removed = asyncio.run(purge())
    _print_success(f"Removed {removed} execution records older than {days_to_keep} days")


@app.command()
def stale(
    hours: int | None = typer.Option(
        None, "--hours", help="Age threshold in hours (defaults to config)"
    ),
):
    """List executions still 'running' past the threshold (crashed runs)."""
    from teamcron.config import get_config
    from teamcron.core.database import AsyncSessionLocal
    from teamcron.core.logging import setup_logging
    from teamcron.cron.execution_service import ExecutionService

    setup_logging()
    older_than = get_config().cron.stale_hours if hours is None else hours

    async def fetch():
        async with AsyncSessionLocal() as db:
            return await ExecutionService(db).find_stale_executions(older_than_hours=older_than)

    records = asyncio.run(fetch())
    if not records:
        _print_success(f"No executions running for more than {older_than} hours")
        return

    for record in records:
        typer.echo(
            f"⚠️ {record.id} {record.job_id}@{record.organization_id} "
            f"started {record.started_at:%Y-%m-%d %H:%M:%S}"
        )


@app.command()
def migrate():
    """Run database migrations (alembic upgrade head)."""
    import subprocess

    result = subprocess.run(["alembic", "upgrade", "head"], check=False)
    raise typer.Exit(result.returncode)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable hot reload"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
):
    """Start the API server."""
    import subprocess

    cmd = ["uvicorn", "teamcron.main:app", "--host", "0.0.0.0", "--port", str(port)]
    if reload:
        cmd.append("--reload")

    subprocess.run(cmd, check=False)


if __name__ == "__main__":
    app()
