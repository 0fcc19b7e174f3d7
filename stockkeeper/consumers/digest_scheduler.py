import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from stockkeeper.core.config import DIGEST_HOUR, DIGEST_TIMEZONE
from stockkeeper.services.alert_service import send_alert_digest

log = logging.getLogger("digest_scheduler")


async def send_daily_digest():
    try:
        await send_alert_digest("daily")
    except Exception:
        log.exception("Failed to send daily inventory alert digest")


async def send_weekly_digest():
    try:
        await send_alert_digest("weekly")
    except Exception:
        log.exception("Failed to send weekly inventory alert digest")


def build_digest_scheduler(hour: int = DIGEST_HOUR, timezone: str = DIGEST_TIMEZONE) -> AsyncIOScheduler:
    """Daily digest every day and a weekly one on Mondays, both at the given wall-clock hour."""
    scheduler = AsyncIOScheduler(timezone=timezone)
    scheduler.add_job(
        send_daily_digest,
        'cron',
        hour=hour,
        minute=0,
        id='daily_alert_digest',
        replace_existing=True,
    )
    scheduler.add_job(
        send_weekly_digest,
        'cron',
        day_of_week='mon',
        hour=hour,
        minute=0,
        id='weekly_alert_digest',
        replace_existing=True,
    )
    return scheduler
