"""Digest arq worker: sends the daily study digest on an hourly cron.

Each run only mails users whose preferred hour is the current UTC hour, so
an hourly schedule gives each user one digest per day.
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from buddy.config import get_settings
from buddy.database import close_db, get_session_factory, init_db
from buddy.digest.dispatcher import send_daily_digests
from buddy.email.service import get_email_service
from buddy.middleware.logging import setup_logging

logger = logging.getLogger(__name__)


async def digest_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize DB + email on worker startup (arq owns the Redis connection)."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    ctx["email_service"] = get_email_service()
    logger.info("Digest worker started (provider=%s)", settings.email_provider)


async def digest_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    await close_db()
    logger.info("Digest worker shut down")


async def hourly_digest(ctx: dict) -> dict:  # type: ignore[type-arg]
    """Scheduled task: minute 0 of every hour (UTC)."""
    async with get_session_factory()() as db:
        report = await send_daily_digests(db, ctx["email_service"])
    logger.info(
        "Digest run complete: %d sent of %d users",
        report.digests_sent, report.total_users,
    )
    return report.to_dict()


class WorkerSettings:
    """arq worker settings for the digest worker."""

    functions = [hourly_digest]
    cron_jobs = [
        cron(hourly_digest, minute=0, run_at_startup=False, unique=True),
    ]
    on_startup = digest_startup
    on_shutdown = digest_shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 4
    # 3 attempts x (transport timeout + retry delay) per user, for many users
    job_timeout = 3600
