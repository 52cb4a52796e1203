"""Organization listing used by the cron runner."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamcron.models.organization import Organization


async def list_organizations(db: AsyncSession) -> list[Organization]:
    """All organizations, oldest first, so batch order is stable between runs."""
    result = await db.execute(select(Organization).order_by(Organization.created_at, Organization.id))
    return list(result.scalars().all())


async def get_organization(db: AsyncSession, organization_id: str) -> Organization | None:
    return await db.get(Organization, organization_id)
