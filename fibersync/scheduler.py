# fibersync/scheduler.py
"""
Background job process. Interval jobs: payment worker, payment retries,
email queue, expiry of stale pending payments and RADIUS status sync.
Daily jobs: invoice generation, auto disconnect and pullout, billing notices.

Run with: python -m fibersync.scheduler
"""
import logging
import time

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - [Scheduler] - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("Scheduler")


def job_listener(event):
    if event.exception:
        logger.error(f"Job {event.job_id} failed: {event.exception}")
    else:
        logger.debug(f"Job {event.job_id} executed")


def build_scheduler(settings=None) -> BackgroundScheduler:
    """Creates the scheduler with every job registered but not started."""
    # imported after load_dotenv()
    from .core.config import get_settings
    from .services.jobs import (
        run_auto_disconnect,
        run_billing_generation,
        run_billing_notices,
        run_email_queue,
        run_expire_stale_payments,
        run_payment_retry,
        run_payment_worker,
        run_radius_status_sync,
    )

    settings = settings or get_settings()
    scheduler = BackgroundScheduler(
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 300,
        }
    )
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    scheduler.add_job(
        run_payment_worker,
        trigger=IntervalTrigger(seconds=settings.payment_worker_interval_seconds),
        id="payment_worker",
        name="Payment Worker",
        replace_existing=True,
    )
    scheduler.add_job(
        run_payment_retry,
        trigger=IntervalTrigger(seconds=settings.payment_retry_interval_seconds),
        id="payment_retry",
        name="Payment Retry",
        replace_existing=True,
    )
    scheduler.add_job(
        run_email_queue,
        trigger=IntervalTrigger(seconds=settings.email_queue_interval_seconds),
        id="email_queue",
        name="Email Queue",
        replace_existing=True,
    )
    scheduler.add_job(
        run_expire_stale_payments,
        trigger=IntervalTrigger(hours=1),
        id="expire_pending_payments",
        name="Expire Stale Pending Payments",
        replace_existing=True,
    )
    scheduler.add_job(
        run_radius_status_sync,
        trigger=IntervalTrigger(seconds=settings.radius_sync_interval_seconds),
        id="radius_status_sync",
        name="RADIUS Status Sync",
        replace_existing=True,
    )

    # Daily billing cycle
    scheduler.add_job(
        run_billing_generation,
        trigger=CronTrigger(hour=settings.billing_generation_hour, minute=0),
        id="billing_generation",
        name="Daily Invoice Generation",
        replace_existing=True,
    )
    scheduler.add_job(
        run_auto_disconnect,
        trigger=CronTrigger(hour=settings.auto_disconnect_hour, minute=0),
        id="auto_disconnect",
        name="Auto Disconnect and Pullout",
        replace_existing=True,
    )
    scheduler.add_job(
        run_billing_notices,
        trigger=CronTrigger(hour=settings.billing_notice_hour, minute=0),
        id="billing_notices",
        name="Overdue and DC Notices",
        replace_existing=True,
    )
    return scheduler


def run_scheduler():
    from .core.bootstrap import bootstrap_system

    bootstrap_system()
    scheduler = build_scheduler()
    scheduler.start()
    logger.info("Scheduler started with jobs: %s", ", ".join(job.id for job in scheduler.get_jobs()))

    try:
        while True:
            time.sleep(60)
    except (KeyboardInterrupt, SystemExit):
        logger.info("Stopping scheduler...")
        scheduler.shutdown()
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    run_scheduler()
