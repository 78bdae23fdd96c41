# birthday_reminder/scheduler.py
import atexit
import logging
import threading
from datetime import datetime

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from birthday_reminder.birthday_task import run_daily_birthday_task
from birthday_reminder.config import Config
from birthday_reminder.mailer import close_gateway

logger = logging.getLogger(__name__)

JOB_ID = "daily_birthday_scan"

# Held for the whole duration of a run so two ticks can never scan at once.
_run_lock = threading.Lock()


def build_trigger(hour=None, minute=None, timezone=None):
    """Daily cron trigger, ``0 7 * * *`` by default, in local time unless told otherwise."""
    hour = Config.BIRTHDAY_CRON_HOUR if hour is None else hour
    minute = Config.BIRTHDAY_CRON_MINUTE if minute is None else minute
    return CronTrigger(hour=hour, minute=minute, timezone=timezone)


def scheduled_birthday_job(app, today=None, **task_kwargs):
    """
    One tick of the daily job. Returns True when the run completed.

    Never raises: a failed run is logged and the scheduler simply waits for
    the next tick.
    """
    if not _run_lock.acquire(blocking=False):
        logger.warning("⏭️ Birthday job still running, skipping this tick")
        return False

    try:
        logger.info("🕖 Scheduled job started: %s", datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
        run_daily_birthday_task(app, today=today, **task_kwargs)
        return True
    except Exception:
        logger.exception("❌ Birthday job failed, waiting for next tick")
        return False
    finally:
        _run_lock.release()


def build_scheduler(app, scheduler_cls=BlockingScheduler, trigger=None):
    scheduler = scheduler_cls()
    job = scheduler.add_job(
        scheduled_birthday_job,
        trigger=trigger or build_trigger(),
        args=[app],
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info("⏰ Birthday job scheduled: %s", job.trigger)
    return scheduler


def register_shutdown(scheduler=None):
    """Release the shared mail session at exit, after stopping a background scheduler."""
    atexit.register(close_gateway)
    if scheduler is not None:
        # atexit runs in reverse order, so this fires before close_gateway
        atexit.register(scheduler.shutdown, wait=False)


if __name__ == "__main__":
    from birthday_reminder.app import app

    scheduler = build_scheduler(app)
    register_shutdown()
    logger.info("🚀 Birthday Scheduler is running...")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("👋 Birthday Scheduler stopped")
