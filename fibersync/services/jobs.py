# fibersync/services/jobs.py
"""
Entry points called by APScheduler. Each job opens its own session and
never lets an exception escape into the scheduler thread.
"""
import logging

from sqlmodel import Session

from ..db.engine_sync import sync_engine
from .auto_disconnect_service import AutoDisconnectService
from .billing_generation_service import BillingGenerationService
from .billing_notification_service import BillingNotificationService
from .email_service import EmailQueueService
from .payment_service import PaymentService
from .payment_worker import PaymentWorker
from .radius_sync_service import RadiusStatusSyncService

logger = logging.getLogger("Jobs")


def run_payment_worker():
    try:
        with Session(sync_engine) as session:
            stats = PaymentWorker(session).process_payments()
        if stats["found"]:
            logger.info(f"Payment worker: {stats}")
        return stats
    except Exception as e:
        logger.error(f"Payment worker job failed: {e}", exc_info=True)


def run_payment_retry():
    try:
        with Session(sync_engine) as session:
            requeued = PaymentWorker(session).retry_failed_payments()
        if requeued:
            logger.info(f"{requeued} payment(s) moved back to the queue")
        return requeued
    except Exception as e:
        logger.error(f"Payment retry job failed: {e}", exc_info=True)


def run_email_queue():
    try:
        with Session(sync_engine) as session:
            service = EmailQueueService(session)
            sent = service.process_pending_emails()
            retried = service.retry_failed_emails()
        return {"pending": sent, "retried": retried}
    except Exception as e:
        logger.error(f"Email queue job failed: {e}", exc_info=True)


def run_expire_stale_payments():
    try:
        with Session(sync_engine) as session:
            expired = PaymentService(session).expire_stale_payments()
        if expired:
            logger.info(f"{expired} stale pending payment(s) expired")
        return expired
    except Exception as e:
        logger.error(f"Pending payment expiry job failed: {e}", exc_info=True)


def run_billing_generation():
    try:
        with Session(sync_engine) as session:
            stats = BillingGenerationService(session).generate_for_date()
        logger.info(f"Invoice generation: {stats['generated']} generated, {stats['failed']} failed")
        return stats
    except Exception as e:
        logger.error(f"Invoice generation job failed: {e}", exc_info=True)


def run_billing_notices():
    try:
        with Session(sync_engine) as session:
            service = BillingNotificationService(session)
            overdue = service.send_overdue_notices()
            dc_notice = service.send_dc_notices()
        return {"overdue": overdue, "dc_notice": dc_notice}
    except Exception as e:
        logger.error(f"Billing notice job failed: {e}", exc_info=True)


def run_auto_disconnect():
    try:
        with Session(sync_engine) as session:
            service = AutoDisconnectService(session)
            disconnect = service.process_auto_disconnect()
            pullout = service.process_auto_pullout()
        return {"disconnect": disconnect, "pullout": pullout}
    except Exception as e:
        logger.error(f"Auto disconnect job failed: {e}", exc_info=True)


def run_radius_status_sync():
    try:
        with Session(sync_engine) as session:
            return RadiusStatusSyncService(session).sync()
    except Exception as e:
        logger.error(f"RADIUS status sync job failed: {e}", exc_info=True)
