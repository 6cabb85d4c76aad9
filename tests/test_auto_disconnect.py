# tests/test_auto_disconnect.py
from datetime import date, datetime

import pytest
from sqlmodel import select

from fibersync.core.constants import BillingStatus
from fibersync.models.invoice import Invoice
from fibersync.models.payment import WorkerLock
from fibersync.models.radius import DisconnectionLog
from fibersync.models.service_order import ServiceOrder
from fibersync.services.auto_disconnect_service import LOCK_NAME, AutoDisconnectService
from fibersync.services.radius_service import RadiusClient, RadiusOperationsService
from fibersync.services.service_order_service import ServiceOrderService

TODAY = date(2026, 3, 20)


@pytest.fixture
def operations(db_session, settings, radius_http, radius_endpoint):
    client = RadiusClient(retries=1, retry_delay=0, http_client=radius_http)
    return RadiusOperationsService(db_session, client=client, settings=settings)


@pytest.fixture
def service(db_session, settings, billing_config, operations, recording_sms):
    orders = ServiceOrderService(db_session, radius=operations, sms=recording_sms)
    return AutoDisconnectService(db_session, radius=operations, service_orders=orders,
                                 settings=settings, config=billing_config)


@pytest.fixture
def add_invoice(db_session):
    def _add(account_no="0001", due=datetime(2026, 3, 16), status="Unpaid", total=1599.0):
        invoice = Invoice(account_no=account_no, invoice_date=datetime(2026, 3, 2), due_date=due,
                          total_amount=total, invoice_balance=total, status=status)
        db_session.add(invoice)
        db_session.commit()
        db_session.refresh(invoice)
        return invoice

    return _add


def test_disconnects_account_overdue_past_offset(db_session, service, make_account, add_invoice,
                                                 fake_radius, recording_sms):
    account = make_account("0001", balance=1599.0)
    add_invoice("0001", due=datetime(2026, 3, 16))

    stats = service.process_auto_disconnect(TODAY)

    assert (stats["found"], stats["disconnected"]) == (1, 1)
    assert fake_radius.users["delacruz09171234567"]["group"] == "Disconnected"
    db_session.refresh(account)
    assert account.billing_status_id == BillingStatus.DISCONNECTED
    log = db_session.exec(select(DisconnectionLog)).one()
    assert log.remarks == "System Auto DC (Overdue 4 days)"
    assert log.username == "delacruz09171234567"
    (_, message), = recording_sms.sent
    assert message.startswith("DISCONNECTION NOTICE")


def test_not_yet_due_for_disconnection_is_left_alone(db_session, service, make_account, add_invoice, fake_radius):
    make_account("0001", balance=1599.0)
    add_invoice("0001", due=datetime(2026, 3, 17))

    stats = service.process_auto_disconnect(TODAY)

    assert stats["found"] == 0
    assert fake_radius.requests == []


def test_disconnection_fee_is_charged(db_session, settings, billing_config, operations, recording_sms,
                                      make_account, add_invoice):
    billing_config.disconnection_fee = 200.0
    orders = ServiceOrderService(db_session, radius=operations, sms=recording_sms)
    service = AutoDisconnectService(db_session, radius=operations, service_orders=orders,
                                    settings=settings, config=billing_config)
    account = make_account("0001", balance=1599.0)
    invoice = add_invoice("0001")

    service.process_auto_disconnect(TODAY)

    db_session.refresh(account)
    db_session.refresh(invoice)
    assert account.account_balance == 1799.0
    assert invoice.service_charge == 200.0
    assert invoice.total_amount == 1799.0
    assert invoice.invoice_balance == 1799.0


@pytest.mark.parametrize(
    "balance, username, status_id",
    [
        (0.0, "delacruz09171234567", BillingStatus.ACTIVE),
        (-10.0, "delacruz09171234567", BillingStatus.ACTIVE),
        (1599.0, None, BillingStatus.ACTIVE),
        (1599.0, "delacruz09171234567", BillingStatus.DISCONNECTED),
        (1599.0, "delacruz09171234567", BillingStatus.PULLOUT),
    ],
)
def test_accounts_that_must_not_be_disconnected(db_session, service, make_account, add_invoice, fake_radius,
                                                balance, username, status_id):
    account = make_account("0001", balance=balance, username=username, status_id=status_id)
    add_invoice("0001")

    stats = service.process_auto_disconnect(TODAY)

    assert stats["disconnected"] == 0
    assert fake_radius.calls("PATCH") == []
    db_session.refresh(account)
    assert account.billing_status_id == status_id


def test_account_disconnected_earlier_today_is_skipped(db_session, service, make_account, add_invoice, fake_radius):
    make_account("0001", balance=1599.0)
    add_invoice("0001")
    db_session.add(DisconnectionLog(account_no="0001", remarks="Disconnected - service order 2026000001",
                                    created_at=datetime(2026, 3, 20, 0, 30)))
    db_session.commit()

    stats = service.process_auto_disconnect(TODAY)

    assert (stats["found"], stats["skipped"]) == (1, 1)
    assert fake_radius.requests == []


def test_radius_failure_leaves_account_active(db_session, service, make_account, add_invoice, fake_radius):
    account = make_account("0001", balance=1599.0)
    add_invoice("0001")
    fake_radius.fail_status = 500

    stats = service.process_auto_disconnect(TODAY)

    assert stats["failed"] == 1
    db_session.refresh(account)
    assert account.billing_status_id == BillingStatus.ACTIVE
    assert db_session.exec(select(DisconnectionLog)).first() is None


def test_oldest_open_invoice_gives_days_overdue(db_session, service, make_account, add_invoice):
    make_account("0001", balance=3198.0)
    add_invoice("0001", due=datetime(2026, 3, 1))
    add_invoice("0001", due=datetime(2026, 3, 15))

    stats = service.process_auto_disconnect(TODAY)

    assert stats["found"] == 1
    log = db_session.exec(select(DisconnectionLog)).one()
    assert log.remarks == "System Auto DC (Overdue 19 days)"


def test_busy_lock_skips_the_run(db_session, service, make_account, add_invoice, fake_radius):
    make_account("0001", balance=1599.0)
    add_invoice("0001")
    db_session.add(WorkerLock(lock_name=LOCK_NAME, locked_by="other-host:1"))
    db_session.commit()

    stats = service.process_auto_disconnect(TODAY)

    assert stats["skipped_run"] is True
    assert fake_radius.requests == []


def test_lock_is_released_after_run(db_session, service):
    service.process_auto_disconnect(TODAY)

    assert db_session.get(WorkerLock, LOCK_NAME) is None


# --- Pullout ---


def test_pullout_order_opened_for_long_overdue_account(db_session, service, make_account, add_invoice):
    make_account("0001", balance=1599.0, status_id=BillingStatus.DISCONNECTED)
    add_invoice("0001", due=datetime(2026, 2, 18))  # 30 days before TODAY

    stats = service.process_auto_pullout(TODAY)

    assert (stats["found"], stats["created"]) == (1, 1)
    order = db_session.exec(select(ServiceOrder)).one()
    assert order.account_no == "0001"
    assert order.concern == "Pullout"
    assert order.support_status == "In Progress"
    assert order.requested_by == "System"
    assert order.concern_remarks == "System Auto Generated (Overdue 30 Days)"


def test_pullout_not_duplicated_while_one_is_open(db_session, service, make_account, add_invoice):
    make_account("0001", balance=1599.0, status_id=BillingStatus.DISCONNECTED)
    add_invoice("0001", due=datetime(2026, 2, 18))

    service.process_auto_pullout(TODAY)
    stats = service.process_auto_pullout(TODAY)

    assert stats["skipped"] == 1
    assert len(db_session.exec(select(ServiceOrder)).all()) == 1


def test_pullout_ignores_paid_and_pulled_out_accounts(db_session, service, make_account, add_invoice):
    make_account("0001", balance=0.0, status_id=BillingStatus.DISCONNECTED)
    add_invoice("0001", due=datetime(2026, 2, 18), status="Paid")
    make_account("0002", balance=1599.0, status_id=BillingStatus.PULLOUT)
    add_invoice("0002", due=datetime(2026, 2, 18))

    assert service.process_auto_pullout(TODAY)["found"] == 0


def test_pullout_offset_zero_disables_pullout(db_session, service, billing_config, make_account, add_invoice):
    billing_config.pullout_offset = 0
    make_account("0001", balance=1599.0)
    add_invoice("0001", due=datetime(2026, 3, 20))

    stats = service.process_auto_pullout(TODAY)

    assert stats == {"found": 0, "created": 0, "skipped": 0, "failed": 0}
    assert db_session.exec(select(ServiceOrder)).first() is None
