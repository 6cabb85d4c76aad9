# tests/test_payment_worker.py
import json
from datetime import datetime, timedelta

from sqlmodel import select

from fibersync.core.constants import ReconnectResult
from fibersync.models.invoice import Invoice, Transaction
from fibersync.models.payment import PendingPayment, WorkerLock
from fibersync.services.payment_worker import LOCK_NAME, PaymentWorker


class FakeReconnector:
    def __init__(self, result=ReconnectResult.SUCCESS):
        self.result = result
        self.calls = []

    def attempt_reconnect(self, account_no, remarks="Auto reconnect after payment"):
        self.calls.append(account_no)
        return self.result


def queue_payment(session, reference_no="0001-ref", amount=1000.0, status="QUEUED", callback_status="PAID"):
    payment = PendingPayment(
        reference_no=reference_no,
        account_no="0001",
        amount=amount,
        status=status,
        payment_id="inv_1",
        callback_payload=json.dumps({"status": callback_status, "payment_channel": "GCASH", "id": "inv_1"}),
    )
    session.add(payment)
    session.commit()
    return payment


def add_invoice(session, total, received=0.0, days_ago=0):
    invoice = Invoice(account_no="0001", total_amount=total, received_payment=received,
                      invoice_date=datetime.utcnow() - timedelta(days=days_ago))
    session.add(invoice)
    session.commit()
    return invoice


def test_payment_is_distributed_oldest_invoice_first(db_session, settings, make_account):
    make_account(balance=1500.0)
    old = add_invoice(db_session, 700.0, days_ago=40)
    new = add_invoice(db_session, 800.0, days_ago=10)
    queue_payment(db_session, amount=1000.0)
    reconnector = FakeReconnector()

    stats = PaymentWorker(db_session, settings=settings, reconnector=reconnector).process_payments()

    assert stats == {"skipped": False, "found": 1, "paid": 1, "failed": 0, "retry": 0}
    db_session.refresh(old)
    db_session.refresh(new)
    assert (old.status, old.received_payment, old.transaction_id) == ("Paid", 700.0, "0001-ref")
    assert (new.status, new.received_payment) == ("Partial", 300.0)

    payment = db_session.exec(select(PendingPayment)).one()
    assert payment.status == "PAID"
    transaction = db_session.exec(select(Transaction)).one()
    assert transaction.status == "Approved"
    assert transaction.payment_method == "Online - Xendit (GCASH)"
    assert transaction.received_payment == 1000.0
    assert "Invoice #" in transaction.remarks
    # 1500 - 1000 leaves a balance, so no reconnect
    assert reconnector.calls == []


def test_settled_balance_triggers_reconnect(db_session, settings, make_account):
    account = make_account(balance=1000.0)
    add_invoice(db_session, 1000.0)
    queue_payment(db_session, amount=1200.0)
    reconnector = FakeReconnector()

    PaymentWorker(db_session, settings=settings, reconnector=reconnector).process_payments()

    db_session.refresh(account)
    assert account.account_balance == -200.0
    assert reconnector.calls == ["0001"]
    payment = db_session.exec(select(PendingPayment)).one()
    assert payment.reconnect_status == "success"
    assert "Credit: ₱200.00" in db_session.exec(select(Transaction)).one().remarks


def test_payment_without_invoices_becomes_credit(db_session, settings, make_account):
    account = make_account(balance=0.0)
    queue_payment(db_session, amount=300.0)

    PaymentWorker(db_session, settings=settings, reconnector=FakeReconnector()).process_payments()

    db_session.refresh(account)
    assert account.account_balance == -300.0
    assert "Applied as credit" in db_session.exec(select(Transaction)).one().remarks


def test_callback_with_non_paid_status_fails_audit(db_session, settings, make_account):
    make_account()
    queue_payment(db_session, callback_status="EXPIRED")

    stats = PaymentWorker(db_session, settings=settings, reconnector=FakeReconnector()).process_payments()

    assert stats["failed"] == 1
    assert db_session.exec(select(PendingPayment)).one().status == "FAILED"
    assert db_session.exec(select(Transaction)).all() == []


def test_missing_account_fails_payment(db_session, settings):
    queue_payment(db_session)
    stats = PaymentWorker(db_session, settings=settings, reconnector=FakeReconnector()).process_payments()
    assert stats["failed"] == 1
    assert db_session.exec(select(PendingPayment)).one().status == "FAILED"


def test_pending_row_with_paid_callback_is_picked_up(db_session, settings, make_account):
    make_account(balance=500.0)
    queue_payment(db_session, amount=100.0, status="PENDING")

    stats = PaymentWorker(db_session, settings=settings, reconnector=FakeReconnector()).process_payments()

    assert stats["paid"] == 1


def test_busy_lock_skips_run(db_session, settings, make_account):
    make_account()
    queue_payment(db_session)
    db_session.add(WorkerLock(lock_name=LOCK_NAME, locked_by="other-host:1"))
    db_session.commit()

    stats = PaymentWorker(db_session, settings=settings, reconnector=FakeReconnector()).process_payments()

    assert stats["skipped"] is True
    assert db_session.exec(select(PendingPayment)).one().status == "QUEUED"


def test_stale_lock_is_taken_over_and_released(db_session, settings, make_account):
    make_account(balance=100.0)
    queue_payment(db_session, amount=50.0)
    db_session.add(WorkerLock(lock_name=LOCK_NAME, locked_by="dead:1",
                              locked_at=datetime.utcnow() - timedelta(hours=1)))
    db_session.commit()

    stats = PaymentWorker(db_session, settings=settings, reconnector=FakeReconnector()).process_payments()

    assert stats["paid"] == 1
    assert db_session.get(WorkerLock, LOCK_NAME) is None


def test_retry_moves_api_retry_back_to_queue(db_session, settings):
    queue_payment(db_session, reference_no="r1", status="API_RETRY")
    queue_payment(db_session, reference_no="r2", status="FAILED")

    assert PaymentWorker(db_session, settings=settings).retry_failed_payments() == 1
    statuses = {p.reference_no: p.status for p in db_session.exec(select(PendingPayment)).all()}
    assert statuses == {"r1": "QUEUED", "r2": "FAILED"}


def test_statistics(db_session, settings):
    queue_payment(db_session, reference_no="q1")
    queue_payment(db_session, reference_no="p1", status="PENDING", callback_status="PENDING")
    queue_payment(db_session, reference_no="x1", status="API_RETRY")

    stats = PaymentWorker(db_session, settings=settings).get_statistics()
    assert (stats["queued"], stats["pending"], stats["api_retry"]) == (1, 1, 1)
    assert stats["worker_running"] is False
