# tests/test_billing_notifications.py
from datetime import date, datetime

import pytest
from sqlmodel import select

from fibersync.models.invoice import Invoice
from fibersync.models.notification import EmailQueue, EmailTemplate, SmsTemplate
from fibersync.services.billing_notification_service import BillingNotificationService
from fibersync.services.settings_service import SettingsService

TODAY = date(2026, 3, 10)


@pytest.fixture
def service(db_session, settings, billing_config, recording_sms):
    return BillingNotificationService(db_session, sms=recording_sms, settings=settings, config=billing_config)


@pytest.fixture
def email_templates(db_session):
    for code in ("OVERDUE", "DC_NOTICE"):
        db_session.add(EmailTemplate(template_code=code, subject_line=f"{code} {{{{account_no}}}}",
                                     body_html="<p>{{amount_due}}</p>"))
    db_session.commit()


@pytest.fixture
def add_invoice(db_session):
    def _add(account_no="0001", due=datetime(2026, 3, 9), status="Unpaid", total=1599.0):
        invoice = Invoice(account_no=account_no, invoice_date=datetime(2026, 2, 23), due_date=due,
                          total_amount=total, invoice_balance=total, status=status)
        db_session.add(invoice)
        db_session.commit()
        db_session.refresh(invoice)
        return invoice

    return _add


def test_overdue_notice_goes_to_open_invoices_due_yesterday(
    service, email_templates, make_account, add_invoice, recording_sms
):
    make_account("0001", balance=1599.0)
    make_account("0002", balance=0.0, contact_number_primary="09181111111")
    make_account("0003", balance=1599.0, contact_number_primary="09182222222")
    add_invoice("0001")
    add_invoice("0002", status="Paid")
    add_invoice("0003", due=datetime(2026, 3, 8))

    stats = service.send_overdue_notices(TODAY)

    assert stats == {"due_date": "2026-03-09", "found": 1, "success": 1, "failed": 0}
    (number, message), = recording_sms.sent
    assert number == "09171234567"
    assert message.startswith("OVERDUE NOTICE")
    assert "1,599.00" in message
    assert "Mar 09, 2026" in message


def test_due_date_time_of_day_does_not_matter(service, make_account, add_invoice):
    make_account("0001")
    add_invoice("0001", due=datetime(2026, 3, 9, 17, 30))

    assert service.send_overdue_notices(TODAY)["found"] == 1


def test_dc_notice_announces_disconnection_date(
    service, email_templates, make_account, add_invoice, recording_sms
):
    make_account("0001", balance=1599.0)
    add_invoice("0001", due=datetime(2026, 3, 7), status="Partial")

    stats = service.send_dc_notices(TODAY)

    assert (stats["due_date"], stats["success"]) == ("2026-03-07", 1)
    (_, message), = recording_sms.sent
    assert message.startswith("DISCONNECTION NOTICE")
    assert "Mar 11, 2026" in message


def test_active_sms_template_replaces_built_in_text(
    db_session, service, email_templates, make_account, add_invoice, recording_sms
):
    db_session.add(SmsTemplate(template_name="Overdue", template_type="overdue",
                               message_content="{{account_no}}: pay {{amount_due}} now"))
    db_session.commit()
    make_account("0001")
    add_invoice("0001", total=2500.5)

    service.send_overdue_notices(TODAY)

    assert recording_sms.sent == [("09171234567", "0001: pay 2,500.50 now")]


def test_overdue_email_is_queued_from_template(db_session, service, make_account, add_invoice):
    db_session.add(EmailTemplate(template_code="OVERDUE", subject_line="Overdue: {{account_no}}",
                                 body_html="<p>{{customer_name}} owes {{amount_due}}</p>"))
    db_session.commit()
    make_account("0001")
    add_invoice("0001")

    service.send_overdue_notices(TODAY)

    email = db_session.exec(select(EmailQueue)).one()
    assert email.recipient_email == "juan@example.test"
    assert email.subject == "Overdue: 0001"
    assert email.body_html == "<p>Juan Dela Cruz owes 1,599.00</p>"


def test_missing_email_template_counts_as_failed(service, make_account, add_invoice, recording_sms):
    make_account("0001")
    add_invoice("0001")

    stats = service.send_dc_notices(date(2026, 3, 12))

    assert (stats["success"], stats["failed"]) == (0, 1)
    assert len(recording_sms.sent) == 1


def test_failed_sms_is_reported(db_session, settings, billing_config, failing_sms, make_account, add_invoice):
    service = BillingNotificationService(db_session, sms=failing_sms, settings=settings, config=billing_config)
    make_account("0001", email_address=None)
    invoice = add_invoice("0001")

    result = service.notify_overdue(invoice)

    assert result == {"sms": False, "email": False, "errors": ["SMS: gateway down"]}


def test_offsets_come_from_settings_table(db_session, settings, recording_sms, make_account, add_invoice):
    SettingsService(db_session).update_settings({"overdue_offset": "2"})
    service = BillingNotificationService(db_session, sms=recording_sms, settings=settings)
    make_account("0001")
    add_invoice("0001", due=datetime(2026, 3, 8))

    assert service.send_overdue_notices(TODAY)["found"] == 1


def test_invalid_stored_offset_falls_back_to_environment(db_session, settings):
    SettingsService(db_session).update_settings({"dc_actual_offset": "soon", "disconnection_fee": "150.50"})

    config = SettingsService(db_session).get_billing_config(settings)

    assert config.dc_actual_offset == settings.dc_actual_offset
    assert config.disconnection_fee == 150.5
