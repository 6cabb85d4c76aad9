# tests/test_billing_generation.py
from datetime import date, datetime

import pytest
from sqlmodel import select

from fibersync.core.constants import BillingStatus
from fibersync.models.invoice import Installment, InstallmentSchedule, Invoice
from fibersync.models.notification import EmailQueue, EmailTemplate
from fibersync.services.billing_generation_service import BillingGenerationService, target_billing_days
from fibersync.services.billing_notification_service import BillingNotificationService

GENERATION_DATE = date(2026, 3, 3)  # billing date 2026-03-10 with 7 advance days


class FakeNotifier:
    def __init__(self):
        self.notified = []

    def notify_billing_generated(self, account, invoice):
        self.notified.append((account.account_no, invoice.id))
        return {"sms": True, "email": True, "errors": []}


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def service(db_session, settings, billing_config, notifier):
    return BillingGenerationService(db_session, notifier=notifier, settings=settings, config=billing_config)


@pytest.fixture
def billable(db_session, make_account):
    def _make(account_no="0001", billing_day=10, **kwargs):
        account = make_account(account_no=account_no, **kwargs)
        account.billing_day = billing_day
        account.date_installed = datetime(2025, 1, billing_day or 1)
        db_session.add(account)
        db_session.commit()
        db_session.refresh(account)
        return account

    return _make


@pytest.mark.parametrize(
    "billing_date, expected",
    [
        (date(2026, 3, 10), {10}),
        (date(2026, 2, 28), {0, 28, 29, 30, 31}),
        (date(2026, 4, 30), {0, 30, 31}),
        (date(2026, 3, 31), {0, 31}),
        (date(2028, 2, 28), {28}),
    ],
)
def test_target_billing_days(billing_date, expected):
    assert target_billing_days(billing_date) == expected


def test_generates_invoice_for_accounts_due_on_billing_date(db_session, service, billable, notifier):
    account = billable("0001", billing_day=10)
    billable("0002", billing_day=11)
    billable("0003", billing_day=10, status_id=BillingStatus.DISCONNECTED)

    stats = service.generate_for_date(GENERATION_DATE)

    assert stats["billing_date"] == "2026-03-10"
    assert (stats["found"], stats["generated"], stats["failed"]) == (1, 1, 0)
    invoice = db_session.exec(select(Invoice)).one()
    assert invoice.account_no == "0001"
    assert invoice.total_amount == 1599.0
    assert invoice.others_and_basic_charges == 1599.0
    assert invoice.status == "Unpaid"
    assert invoice.invoice_date.date() == GENERATION_DATE
    assert invoice.due_date == datetime(2026, 3, 17)
    db_session.refresh(account)
    assert account.account_balance == 1599.0
    assert notifier.notified == [("0001", invoice.id)]


def test_end_of_month_accounts_billed_on_last_day(db_session, service, billable):
    billable("0001", billing_day=0)
    billable("0002", billing_day=30)
    billable("0003", billing_day=28)

    # 2026-02-21 + 7 days = 2026-02-28, last day of February
    stats = service.generate_for_date(date(2026, 2, 21))

    assert stats["generated"] == 3
    assert len(db_session.exec(select(Invoice)).all()) == 3


def test_uninstalled_accounts_are_not_billed(db_session, service, billable):
    account = billable("0001", billing_day=10)
    account.date_installed = None
    db_session.add(account)
    db_session.commit()

    assert service.generate_for_date(GENERATION_DATE)["found"] == 0


def test_credit_pays_new_invoice_first(db_session, service, billable):
    account = billable("0001", balance=-500.0)

    service.generate_for_date(GENERATION_DATE)

    invoice = db_session.exec(select(Invoice)).one()
    assert invoice.received_payment == 500.0
    assert invoice.invoice_balance == 1099.0
    assert invoice.status == "Partial"
    db_session.refresh(account)
    assert account.account_balance == 1099.0


def test_credit_covering_whole_invoice_marks_it_paid(db_session, service, billable):
    account = billable("0001", balance=-2000.0)

    service.generate_for_date(GENERATION_DATE)

    invoice = db_session.exec(select(Invoice)).one()
    assert invoice.status == "Paid"
    assert invoice.received_payment == 1599.0
    db_session.refresh(account)
    assert account.account_balance == -401.0


def test_due_installments_are_added_to_invoice(db_session, service, billable):
    billable("0001")
    installment = Installment(account_no="0001", start_date=date(2026, 3, 5), months_to_pay=2,
                              monthly_payment=500.0, total_balance=1000.0)
    db_session.add(installment)
    db_session.flush()
    due = InstallmentSchedule(installment_id=installment.id, installment_no=1,
                              due_date=date(2026, 3, 5), amount=500.0)
    later = InstallmentSchedule(installment_id=installment.id, installment_no=2,
                                due_date=date(2026, 4, 5), amount=500.0)
    db_session.add(due)
    db_session.add(later)
    db_session.commit()

    service.generate_for_date(GENERATION_DATE)

    invoice = db_session.exec(select(Invoice)).one()
    assert invoice.staggered == 500.0
    assert invoice.total_amount == 2099.0
    db_session.refresh(due)
    db_session.refresh(later)
    assert due.invoice_id == invoice.id
    assert later.invoice_id is None


def test_second_run_on_same_day_skips_invoiced_accounts(db_session, service, billable):
    account = billable("0001")

    service.generate_for_date(GENERATION_DATE)
    stats = service.generate_for_date(GENERATION_DATE)

    assert (stats["generated"], stats["skipped"]) == (0, 1)
    assert len(db_session.exec(select(Invoice)).all()) == 1
    db_session.refresh(account)
    assert account.account_balance == 1599.0


def test_account_without_plan_is_reported_and_others_continue(db_session, service, billable):
    billable("0001", plan_name=None)
    billable("0002")

    stats = service.generate_for_date(GENERATION_DATE)

    assert (stats["generated"], stats["failed"]) == (1, 1)
    assert stats["errors"] == [{"account_no": "0001", "error": "Account 0001 has no plan"}]
    assert db_session.exec(select(Invoice.account_no)).all() == ["0002"]


def test_statement_notice_is_sent_by_sms_and_email(db_session, settings, billing_config, billable, recording_sms):
    db_session.add(EmailTemplate(template_code="STATEMENT", subject_line="Statement for {{account_no}}",
                                 body_html="<p>Amount due {{amount_due}} on {{due_date}}</p>"))
    db_session.commit()
    billable("0001")
    notifier = BillingNotificationService(db_session, sms=recording_sms, settings=settings, config=billing_config)
    service = BillingGenerationService(db_session, notifier=notifier, settings=settings, config=billing_config)

    stats = service.generate_for_date(GENERATION_DATE)

    assert stats["notified"] == 1
    (number, message), = recording_sms.sent
    assert number == "09171234567"
    assert "1,599.00" in message
    assert "Mar 17, 2026" in message
    email = db_session.exec(select(EmailQueue)).one()
    assert email.subject == "Statement for 0001"
    assert email.body_html == "<p>Amount due 1,599.00 on Mar 17, 2026</p>"
