"""Background scheduler for the daily digest.

Uses APScheduler to run the digest once a day at the configured local time
(default 08:30 America/Toronto). Controlled by ENABLE_SCHEDULER (default
true); set ENABLE_SCHEDULER=false to disable during tests or CI.

The job runs with max_instances=1 and coalesce=True, so a second trigger
while a run is in flight is dropped rather than overlapping it.
"""

from datetime import datetime
from typing import Any, Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from scripts.lib.config import DigestSettings
from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)

JOB_ID = "daily_digest"

_scheduler: Any = None


def _guarded(job: Callable[[], Any]) -> Callable[[], None]:
    def run() -> None:
        try:
            job()
        except Exception:
            logger.exception("Scheduled daily digest run failed")
    return run


def start_scheduler(settings: DigestSettings, job: Callable[[], Any]) -> Optional[BackgroundScheduler]:
    """Start the background scheduler if enabled.

    Args:
        settings: Supplies the send time, timezone and enable flag.
        job: Zero-argument callable performing one digest run.

    Returns:
        The running scheduler, or None when scheduling is disabled.
    """
    global _scheduler

    if not settings.enable_scheduler:
        logger.info("Background scheduler disabled (ENABLE_SCHEDULER != true)")
        return None
    if _scheduler is not None:
        return _scheduler

    _scheduler = BackgroundScheduler(timezone=settings.timezone)
    _scheduler.add_job(
        _guarded(job),
        trigger=CronTrigger(
            hour=settings.send_hour,
            minute=settings.send_minute,
            timezone=settings.timezone,
        ),
        id=JOB_ID,
        name="Daily Pipedrive digest",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    _scheduler.start()
    logger.info(
        "Background scheduler started: daily digest at %02d:%02d %s",
        settings.send_hour, settings.send_minute, settings.timezone,
    )
    return _scheduler


def stop_scheduler() -> None:
    """Stop the background scheduler if running."""
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Background scheduler stopped")


def next_run_time() -> Optional[datetime]:
    """When the digest job fires next, or None if nothing is scheduled."""
    if _scheduler is None:
        return None
    job = _scheduler.get_job(JOB_ID)
    if job is None:
        return None
    return job.next_run_time
