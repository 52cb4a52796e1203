from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from teamcron.config import AppConfig, Settings, get_config, get_settings
from teamcron.core.database import get_db
from teamcron.core.logging import get_logger
from teamcron.core.security import verify_cron_secret
from teamcron.cron import create_runner
from teamcron.cron.runner import CronRunner

logger = get_logger(__name__)

# Type aliases for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Config = Annotated[AppConfig, Depends(get_config)]


def get_cron_runner(config: Config) -> CronRunner:
    """Runner bound to the application session factory."""
    return create_runner(config=config)


async def require_cron_secret(
    settings: AppSettings,
    authorization: str | None = Header(default=None),
) -> None:
    """Reject requests that don't carry ``Authorization: Bearer <CRON_SECRET>``.

    An unset secret is a server misconfiguration, not an auth failure.
    """
    if not settings.cron_secret:
        logger.error("cron_secret_not_configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Cron secret not configured",
        )

    if not verify_cron_secret(authorization, settings.cron_secret):
        logger.warning("cron_unauthorized_request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


# Type aliases for cron endpoints
CronRunnerDep = Annotated[CronRunner, Depends(get_cron_runner)]
CronAuth = Depends(require_cron_secret)
