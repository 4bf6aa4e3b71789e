import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ecomap.config import settings
from ecomap.services.event_data import EventDataManager

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def start_scheduler(manager: EventDataManager):
    """Start the periodic event cache refresh."""
    interval = settings.refresh_interval_seconds
    if interval <= 0:
        logger.info("Periodic refresh disabled")
        return
    scheduler.add_job(
        manager.refresh,
        "interval",
        seconds=interval,
        id="event_cache_refresh",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler started: event cache refresh every %ds", interval)


def stop_scheduler():
    """Shut down the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
