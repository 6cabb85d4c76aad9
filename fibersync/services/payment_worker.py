# fibersync/services/payment_worker.py
"""
Applies confirmed online payments to billing.

One run (guarded by a row in worker_locks):
  1. picks up to `batch_size` QUEUED payments (plus PENDING rows whose
     stored callback already says PAID),
  2. re-audits the callback status,
  3. distributes the amount over the account's unpaid invoices (oldest
     first), leftovers become credit, and the balance drops by the amount,
  4. records an Approved transaction and marks the payment PAID,
  5. reconnects the subscriber when the balance is settled.
A payment that fails mid-way goes to API_RETRY and is retried later.
"""
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func, or_
from sqlmodel import Session, select

from ..core.config import Settings, get_settings
from ..core.constants import XENDIT_PAID_STATUSES, PaymentStatus, ReconnectResult
from ..core.log_files import get_file_logger
from ..models.billing_account import BillingAccount
from ..models.invoice import Invoice, Transaction
from ..models.payment import PendingPayment, WorkerLock
from .radius_service import RadiusReconnectionService
from .worker_lock import acquire_lock, release_lock

logger = get_file_logger("fibersync.payment_worker", "payment_worker.log")

LOCK_NAME = "payment_worker"
PAID_EPSILON = 0.01


class PaymentWorker:
    def __init__(self, session: Session, settings: Optional[Settings] = None,
                 reconnector: Optional[RadiusReconnectionService] = None):
        self.session = session
        self.settings = settings or get_settings()
        self._reconnector = reconnector

    @property
    def reconnector(self) -> RadiusReconnectionService:
        if self._reconnector is None:
            self._reconnector = RadiusReconnectionService(self.session)
        return self._reconnector

    # --- Lock ---

    def acquire_lock(self) -> bool:
        return acquire_lock(self.session, LOCK_NAME, self.settings.payment_worker_lock_timeout)

    def release_lock(self) -> None:
        release_lock(self.session, LOCK_NAME)

    # --- Run ---

    def _select_batch(self, batch_size: int) -> List[PendingPayment]:
        callback_paid = or_(*[
            PendingPayment.callback_payload.like(f'%"status": "{status}"%') for status in XENDIT_PAID_STATUSES
        ])
        return self.session.exec(
            select(PendingPayment)
            .where(or_(
                PendingPayment.status == PaymentStatus.QUEUED.value,
                and_(PendingPayment.status == PaymentStatus.PENDING.value, callback_paid),
            ))
            .order_by(PendingPayment.payment_date.asc())
            .limit(batch_size)
        ).all()

    def process_payments(self, batch_size: Optional[int] = None) -> Dict[str, Any]:
        """One worker run. Returns counters; `skipped` is True when the lock was busy."""
        stats = {"skipped": False, "found": 0, "paid": 0, "failed": 0, "retry": 0}
        if not self.acquire_lock():
            stats["skipped"] = True
            return stats

        try:
            payments = self._select_batch(batch_size or self.settings.payment_worker_batch_size)
            stats["found"] = len(payments)
            if payments:
                logger.info(f"Found {len(payments)} payment(s) to process")
            for payment in payments:
                outcome = self.process_payment(payment)
                stats[outcome] += 1
        finally:
            self.release_lock()

        if stats["found"]:
            logger.info(f"Run finished: {stats}")
        return stats

    def process_payment(self, payment: PendingPayment) -> str:
        """Applies one payment. Returns "paid", "failed" or "retry"."""
        reference_no = payment.reference_no
        callback = json.loads(payment.callback_payload) if payment.callback_payload else {}

        if callback:
            gateway_status = str(callback.get("status", "")).upper()
            if gateway_status not in XENDIT_PAID_STATUSES:
                logger.warning(f"AUDIT FAIL: {reference_no} callback status is {gateway_status}, marking FAILED")
                self._set_status(payment, PaymentStatus.FAILED)
                return "failed"

        try:
            payment.status = PaymentStatus.PROCESSING.value
            payment.last_attempt_at = datetime.utcnow()
            self.session.add(payment)
            self.session.flush()

            account = self.session.exec(
                select(BillingAccount).where(BillingAccount.account_no == payment.account_no)
            ).first()
            if not account:
                self.session.rollback()
                logger.error(f"Account {payment.account_no} not found for {reference_no}")
                self._set_status(payment, PaymentStatus.FAILED)
                return "failed"

            summary = self.apply_to_invoices(account, payment.amount, reference_no)

            channel = callback.get("payment_channel") or callback.get("bank_code") or "Xendit"
            invoice_id = callback.get("id") or payment.payment_id or "N/A"
            now = datetime.utcnow()
            self.session.add(
                Transaction(
                    account_no=payment.account_no,
                    transaction_type="Recurring Fee",
                    received_payment=payment.amount,
                    payment_method=f"Online - Xendit ({channel})",
                    reference_no=reference_no,
                    or_no=reference_no,
                    remarks=f"Payment via Xendit Portal - Invoice: {invoice_id} - {summary}",
                    status="Approved",
                    payment_date=now,
                    date_processed=now,
                )
            )
            payment.status = PaymentStatus.PAID.value
            payment.updated_at = now
            self.session.add(payment)
            self.session.commit()
            logger.info(f"Success: {reference_no} ₱{payment.amount:,.2f} - {summary}")
        except Exception as e:
            self.session.rollback()
            logger.error(f"Failed to process {reference_no}: {e}")
            self._set_status(payment, PaymentStatus.API_RETRY)
            return "retry"

        self.session.refresh(account)
        if account.account_balance <= 0:
            reconnect_status = self.reconnector.attempt_reconnect(payment.account_no)
            payment.reconnect_status = reconnect_status.value
            self.session.add(payment)
            self.session.commit()
            log = logger.info if reconnect_status == ReconnectResult.SUCCESS else logger.warning
            log(f"Reconnect attempt for {reference_no}: {reconnect_status.value}")
        return "paid"

    def apply_to_invoices(self, account: BillingAccount, amount: float, reference_no: str) -> str:
        """
        Pays the account's open invoices oldest first and lowers the balance
        by `amount`. Returns a human readable distribution summary. Does not commit.
        """
        invoices = self.session.exec(
            select(Invoice)
            .where(Invoice.account_no == account.account_no, Invoice.status != "Paid")
            .order_by(Invoice.invoice_date.asc(), Invoice.id.asc())
        ).all()

        remaining = amount
        distribution = []
        for invoice in invoices:
            if remaining <= 0:
                break
            open_amount = invoice.total_amount - invoice.received_payment
            if open_amount <= 0:
                continue
            applied = min(remaining, open_amount)
            invoice.received_payment += applied
            invoice.status = "Paid" if invoice.total_amount - invoice.received_payment <= PAID_EPSILON else "Partial"
            invoice.transaction_id = reference_no
            invoice.updated_at = datetime.utcnow()
            self.session.add(invoice)
            remaining -= applied
            distribution.append(f"Invoice #{invoice.id}: ₱{applied:,.2f} ({invoice.status})")

        account.account_balance = round(account.account_balance - amount, 2)
        account.balance_update_date = datetime.utcnow()
        account.updated_at = datetime.utcnow()
        self.session.add(account)

        if not distribution:
            return "Applied as credit (No unpaid invoices)"
        summary = ", ".join(distribution)
        if remaining > PAID_EPSILON:
            summary += f" | Credit: ₱{remaining:,.2f}"
        return summary

    def _set_status(self, payment: PendingPayment, status: PaymentStatus) -> None:
        payment.status = status.value
        payment.updated_at = datetime.utcnow()
        self.session.add(payment)
        self.session.commit()

    # --- Maintenance ---

    def retry_failed_payments(self, batch_size: Optional[int] = None) -> int:
        """Moves API_RETRY payments back to QUEUED so the next run picks them up."""
        payments = self.session.exec(
            select(PendingPayment)
            .where(PendingPayment.status == PaymentStatus.API_RETRY.value)
            .order_by(PendingPayment.last_attempt_at.asc())
            .limit(batch_size or self.settings.payment_retry_batch_size)
        ).all()
        for payment in payments:
            payment.status = PaymentStatus.QUEUED.value
            payment.updated_at = datetime.utcnow()
            self.session.add(payment)
        self.session.commit()
        if payments:
            logger.info(f"Re-queued {len(payments)} payment(s) for retry")
        return len(payments)

    def get_statistics(self) -> Dict[str, Any]:
        def count(*conditions) -> int:
            return self.session.exec(select(func.count(PendingPayment.id)).where(*conditions)).one()

        today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        lock = self.session.get(WorkerLock, LOCK_NAME)
        return {
            "pending": count(PendingPayment.status == PaymentStatus.PENDING.value),
            "queued": count(PendingPayment.status == PaymentStatus.QUEUED.value),
            "processing": count(PendingPayment.status == PaymentStatus.PROCESSING.value),
            "paid_today": count(PendingPayment.status == PaymentStatus.PAID.value, PendingPayment.updated_at >= today),
            "failed_today": count(PendingPayment.status == PaymentStatus.FAILED.value, PendingPayment.updated_at >= today),
            "api_retry": count(PendingPayment.status == PaymentStatus.API_RETRY.value),
            "worker_running": lock is not None,
            "locked_by": lock.locked_by if lock else None,
        }
