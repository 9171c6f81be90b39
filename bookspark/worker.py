"""ARQ worker: hourly digest broadcast.

Usage:
    arq bookspark.worker.WorkerSettings
"""

import logging

from arq import cron
from arq.connections import RedisSettings

from bookspark.config import get_settings
from bookspark.constants import ARQ_JOB_TIMEOUT, ARQ_MAX_JOBS
from bookspark.utils import setup_logging

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    if settings.resend_api_key:
        import resend
        resend.api_key = settings.resend_api_key


async def hourly_digest(ctx: dict) -> dict:
    """Cron job: every hour, send digests to users whose digest time has come."""
    from bookspark.scheduler_tasks import send_due_digests

    stats = await send_due_digests()
    logger.info("Hourly digest run: %d sent, %d failed, %d skipped", stats.sent, stats.failed, stats.skipped)
    return {"sent": stats.sent, "failed": stats.failed, "skipped": stats.skipped}


class WorkerSettings:
    """ARQ worker configuration."""

    cron_jobs = [cron(hourly_digest, minute=0)]  # Every hour at :00
    on_startup = startup

    redis_settings = RedisSettings.from_dsn(get_settings().redis_url or "redis://localhost:6379")

    max_jobs = ARQ_MAX_JOBS
    job_timeout = ARQ_JOB_TIMEOUT
