"""
Pytest configuration and fixtures for teamcron tests.

Provides:
- Async test database with SQLite
- Test client for API testing
- Factory fixtures for creating test data

Factories commit, so rows are visible to the separate sessions the runner
and jobs open through ``session_maker``.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import date, datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from teamcron.config import AppConfig, Settings, get_config, get_settings
from teamcron.core.database import get_db
from teamcron.cron import create_registry
from teamcron.cron.registry import JobRegistry
from teamcron.cron.runner import CronRunner
from teamcron.dependencies import get_cron_runner
from teamcron.main import app
from teamcron.models import (
    Base,
    Feedback,
    Initiative,
    Notification,
    Objective,
    OneOnOne,
    Organization,
    Person,
    PersonStatus,
    Task,
    TaskStatus,
    User,
)

# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_CRON_SECRET = "test-cron-secret"


# Override settings for testing
class TestSettings(Settings):
    database_url: str = TEST_DATABASE_URL
    debug: bool = True
    cron_secret: str = TEST_CRON_SECRET
    base_url: str = "http://localhost:8000"


@pytest.fixture
def test_settings() -> TestSettings:
    return TestSettings()


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    """Config with no config.yml overrides."""
    return AppConfig(config_path=tmp_path / "missing.yml")


@pytest_asyncio.fixture
async def db_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine, as handed to the runner."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def registry(app_config) -> JobRegistry:
    """Registry with the built-in jobs and their default configuration."""
    return create_registry(app_config)


@pytest.fixture
def runner(registry, session_maker) -> CronRunner:
    return CronRunner(registry, session_maker)


@pytest.fixture
def run_job(registry: JobRegistry, session_maker):
    """Run one job through the registry in its own session, like the runner does."""

    async def _run_job(
        job_id: str,
        organization_id: str | None,
        started_at: datetime | None = None,
        dry_run: bool = False,
    ):
        async with session_maker() as db:
            return await registry.execute_job(
                db,
                job_id,
                started_at=started_at,
                organization_id=organization_id,
                dry_run=dry_run,
            )

    return _run_job


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, runner: CronRunner, app_config: AppConfig
) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client with database, settings and runner overrides."""

    async def override_get_db():
        yield db_session

    def override_get_settings():
        return TestSettings()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = override_get_settings
    app.dependency_overrides[get_config] = lambda: app_config
    app.dependency_overrides[get_cron_runner] = lambda: runner

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {TEST_CRON_SECRET}"}


# ============================================================================
# Factory Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def organization_factory(db_session: AsyncSession):
    """Factory for creating test organizations."""

    async def _create_organization(name: str = "Acme", created_at: datetime | None = None):
        organization = Organization(name=name, slug=f"{name.lower()}-{uuid.uuid4().hex[:8]}")
        if created_at is not None:
            organization.created_at = created_at
        db_session.add(organization)
        await db_session.commit()
        return organization

    return _create_organization


@pytest_asyncio.fixture
async def user_factory(db_session: AsyncSession):
    """Factory for creating test user accounts."""

    async def _create_user(organization: Organization, name: str = "Test User") -> User:
        user = User(
            email=f"test-{uuid.uuid4().hex[:8]}@example.com",
            name=name,
            organization_id=organization.id,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _create_user


@pytest_asyncio.fixture
async def person_factory(db_session: AsyncSession, user_factory):
    """Factory for creating people.

    ``with_user=True`` links the person to a new application account, which
    is what makes them a notification recipient.
    """

    async def _create_person(
        organization: Organization,
        name: str = "Test Person",
        manager: Person | None = None,
        with_user: bool = False,
        birthday: date | None = None,
        status: PersonStatus = PersonStatus.ACTIVE,
    ) -> Person:
        user = await user_factory(organization, name=name) if with_user else None
        person = Person(
            organization_id=organization.id,
            name=name,
            birthday=birthday,
            status=status.value,
            manager_id=manager.id if manager else None,
            user_id=user.id if user else None,
        )
        db_session.add(person)
        await db_session.commit()
        return person

    return _create_person


@pytest_asyncio.fixture
async def initiative_factory(db_session: AsyncSession):
    """Factory for creating initiatives."""

    async def _create_initiative(organization: Organization, title: str = "Q3 Roadmap"):
        initiative = Initiative(organization_id=organization.id, title=title)
        db_session.add(initiative)
        await db_session.commit()
        return initiative

    return _create_initiative


@pytest_asyncio.fixture
async def objective_factory(db_session: AsyncSession):
    """Factory for creating objectives under an initiative."""

    async def _create_objective(initiative: Initiative, title: str = "Ship v2") -> Objective:
        objective = Objective(initiative_id=initiative.id, title=title)
        db_session.add(objective)
        await db_session.commit()
        return objective

    return _create_objective


@pytest_asyncio.fixture
async def task_factory(db_session: AsyncSession):
    """Factory for creating tasks."""

    async def _create_task(
        title: str = "Write report",
        assignee: Person | None = None,
        initiative: Initiative | None = None,
        objective: Objective | None = None,
        due_date: datetime | None = None,
        status: TaskStatus = TaskStatus.TODO,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> Task:
        task = Task(
            title=title,
            status=status.value,
            assignee_id=assignee.id if assignee else None,
            initiative_id=initiative.id if initiative else None,
            objective_id=objective.id if objective else None,
            due_date=due_date,
        )
        if created_at is not None:
            task.created_at = created_at
        if updated_at is not None:
            task.updated_at = updated_at
        db_session.add(task)
        await db_session.commit()
        return task

    return _create_task


@pytest_asyncio.fixture
async def one_on_one_factory(db_session: AsyncSession):
    """Factory for creating one-on-ones."""

    async def _create_one_on_one(
        manager: Person, report: Person, scheduled_at: datetime | None
    ) -> OneOnOne:
        one_on_one = OneOnOne(
            manager_id=manager.id, report_id=report.id, scheduled_at=scheduled_at
        )
        db_session.add(one_on_one)
        await db_session.commit()
        return one_on_one

    return _create_one_on_one


@pytest_asyncio.fixture
async def feedback_factory(db_session: AsyncSession):
    """Factory for creating feedback entries."""

    async def _create_feedback(
        about: Person, created_at: datetime | None = None, body: str = "Great work"
    ) -> Feedback:
        feedback = Feedback(about_id=about.id, body=body)
        if created_at is not None:
            feedback.created_at = created_at
        db_session.add(feedback)
        await db_session.commit()
        return feedback

    return _create_feedback


@pytest_asyncio.fixture
async def notification_factory(db_session: AsyncSession):
    """Factory for creating notifications directly (bypassing jobs)."""

    async def _create_notification(
        organization_id: str,
        user_id: str | None,
        metadata: dict | None = None,
        created_at: datetime | None = None,
        title: str = "Earlier notification",
    ) -> Notification:
        notification = Notification(
            title=title,
            message="Earlier message",
            type="info",
            organization_id=organization_id,
            user_id=user_id,
            metadata_json=metadata or {},
        )
        if created_at is not None:
            notification.created_at = created_at
        db_session.add(notification)
        await db_session.commit()
        return notification

    return _create_notification


@pytest.fixture
def fetch_notifications(session_maker):
    """Read notifications back through a fresh session, oldest first."""
    from sqlalchemy import select

    async def _fetch(
        organization_id: str | None = None, user_id: str | None = None
    ) -> list[Notification]:
        query = select(Notification).order_by(Notification.created_at, Notification.id)
        if organization_id:
            query = query.where(Notification.organization_id == organization_id)
        if user_id:
            query = query.where(Notification.user_id == user_id)
        async with session_maker() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    return _fetch
