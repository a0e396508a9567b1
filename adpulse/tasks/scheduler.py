"""
Background task scheduler using APScheduler
"""
import asyncio
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from adpulse.core.config import settings

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: BackgroundScheduler = None


def start_scheduler():
    """Initialize and start the scheduler"""
    global scheduler

    if scheduler is not None:
        return

    scheduler = BackgroundScheduler()

    # ============================================
    # Daily Jobs
    # ============================================

    # Incremental Meta sync (yesterday's insights) for every connected user
    scheduler.add_job(
        func=daily_meta_sync_job,
        trigger=CronTrigger(hour=settings.DAILY_SYNC_HOUR, minute=settings.DAILY_SYNC_MINUTE),
        id="daily_meta_sync",
        name="Daily Meta sync of all users",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(f"Scheduler started with {len(scheduler.get_jobs())} jobs")


def stop_scheduler():
    """Stop the scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")


# ============================================
# Job Functions
# ============================================

def daily_meta_sync_job():
    """Sync every connected user's Meta data (yesterday only)"""
    logger.info("Running daily Meta sync job...")
    try:
        # Import here to avoid circular imports
        from adpulse.tasks.sync_tasks import sync_all_users
        summary = asyncio.run(sync_all_users(triggered_by="scheduler"))
        logger.info(f"Daily Meta sync completed: {summary}")
    except Exception as e:
        logger.exception(f"Daily Meta sync failed: {e}")
