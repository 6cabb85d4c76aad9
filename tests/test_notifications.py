# tests/test_notifications.py
import json

import httpx
import pytest
from sqlmodel import select

from fibersync.core.constants import BillingStatus
from fibersync.models.notification import EmailQueue, EmailTemplate, SmsBlastLog, SmsConfig, SmsTemplate
from fibersync.services.email_service import EmailQueueService, ResendEmailClient
from fibersync.services.sms_service import ItexmoSmsService, SmsTemplateService, normalize_number


class Recorder:
    def __init__(self, status_code=200, body="Success"):
        self.status_code = status_code
        self.body = body
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text=self.body)


@pytest.fixture
def gateway():
    return Recorder()


@pytest.fixture
def sms_service(db_session, settings, gateway):
    db_session.add(SmsConfig(email="ops@example.test", password="pw", code="API-1", sender="FIBER"))
    db_session.commit()
    return ItexmoSmsService(db_session, settings=settings,
                            http_client=httpx.Client(transport=httpx.MockTransport(gateway.handler)))


@pytest.mark.parametrize(
    "raw, expected",
    [("9171234567", "09171234567"), (" 09171234567 ", "09171234567"), (None, ""), ("+639171234567", "+639171234567")],
)
def test_normalize_number(raw, expected):
    assert normalize_number(raw) == expected


def test_send_posts_itexmo_payload(sms_service, gateway):
    result = sms_service.send("9171234567", "Hello")

    assert result["success"] is True
    body = json.loads(gateway.requests[0].content)
    assert body == {
        "Email": "ops@example.test",
        "Password": "pw",
        "ApiCode": "API-1",
        "Recipients": ["09171234567"],
        "Message": "Hello",
        "SenderId": "FIBER",
    }


def test_send_retries_then_fails(sms_service, gateway):
    gateway.status_code = 500
    result = sms_service.send("09171234567", "Hello")
    assert result["success"] is False
    assert len(gateway.requests) == 3


def test_send_without_config(db_session, settings):
    result = ItexmoSmsService(db_session, settings=settings).send("09171234567", "Hello")
    assert result["success"] is False
    assert "configuration" in result["error"]


def test_send_requires_number_and_message(sms_service):
    assert sms_service.send("", "Hello")["success"] is False
    assert sms_service.send("09171234567", "")["success"] is False


def test_template_rendering(db_session):
    db_session.add(SmsTemplate(template_name="Due", template_type="disconnection",
                               message_content="Hi {{customer_name}}, pay PHP {{amount_due}} for {{account_no}}"))
    db_session.commit()
    message = SmsTemplateService(db_session).build_message(
        "disconnection", {"customer_name": "Juan", "account_no": "0001", "balance": "1,599.00"}
    )
    assert message == "Hi Juan, pay PHP 1,599.00 for 0001"


def test_builtin_message_when_no_template(db_session):
    message = SmsTemplateService(db_session).build_message("pullout", {"customer_name": "Juan", "account_no": "0001"})
    assert message.startswith("Dear Juan, the equipment of account 0001")


def test_blast_sends_to_active_accounts(sms_service, gateway, db_session, make_account):
    make_account(account_no="0001", barangay="Alangilan")
    make_account(account_no="0002", barangay="Alangilan", username="other", status_id=BillingStatus.DISCONNECTED)
    make_account(account_no="0003", barangay="Bolbok", username="third")

    result = sms_service.send_blast("Barangay", "Alangilan", "Advisory for {{Account_No}}")

    assert result["sent_count"] == 1
    assert result["total_recipients"] == 1
    assert json.loads(gateway.requests[0].content)["Message"] == "Advisory for 0001"
    log = db_session.exec(select(SmsBlastLog)).one()
    assert (log.message_count, log.failed_count) == (1, 0)


def test_blast_by_lcp(sms_service, make_account):
    make_account()
    assert sms_service.send_blast("LCP", "LCP-01", "Maintenance")["sent_count"] == 1


def test_blast_validation(sms_service):
    assert sms_service.send_blast("Planet", "Mars", "x")["error"] == "Invalid filter type"
    assert sms_service.send_blast("Barangay", "Nowhere", "x")["error"] == "No recipients found for the specified filter"


class FakeEmailClient:
    def __init__(self, success=True):
        self.success = success
        self.sent = []

    def send(self, email):
        self.sent.append(email.recipient_email)
        return {"success": True, "id": "em_1"} if self.success else {"success": False, "error": "rejected"}


def test_queue_from_template(db_session, settings):
    db_session.add(EmailTemplate(template_code="RECONNECTION", subject_line="Welcome back {{customer_name}}",
                                 body_html="<p>{{account_no}}</p>", bcc="audit@example.test"))
    db_session.commit()
    service = EmailQueueService(db_session, client=FakeEmailClient(), settings=settings)

    email = service.queue_from_template("RECONNECTION", {"recipient_email": "juan@example.test",
                                                         "customer_name": "Juan", "account_no": "0001"})

    assert email.subject == "Welcome back Juan"
    assert email.body_html == "<p>0001</p>"
    assert email.bcc == "audit@example.test"
    assert service.queue_from_template("MISSING", {"recipient_email": "x@example.test"}) is None


def test_process_and_retry(db_session, settings):
    client = FakeEmailClient(success=False)
    service = EmailQueueService(db_session, client=client, settings=settings)
    service.queue_email({"recipient_email": "a@example.test", "subject": "s", "body_html": "b"})

    assert service.process_pending_emails() == {"processed": 1, "sent": 0, "failed": 1}
    email = db_session.exec(select(EmailQueue)).one()
    assert (email.status, email.attempts, email.error_message) == ("failed", 1, "rejected")

    client.success = True
    assert service.retry_failed_emails()["sent"] == 1
    db_session.refresh(email)
    assert email.status == "sent"
    assert email.sent_at is not None


def test_queue_requires_recipient(db_session, settings):
    with pytest.raises(ValueError):
        EmailQueueService(db_session, client=FakeEmailClient(), settings=settings).queue_email(
            {"subject": "s", "body_html": "b"}
        )


def test_resend_client_payload(settings):
    captured = []

    def handler(request):
        captured.append(request)
        return httpx.Response(200, json={"id": "em_123"})

    client = ResendEmailClient(settings, http_client=httpx.Client(transport=httpx.MockTransport(handler)))
    email = EmailQueue(recipient_email="juan@example.test", subject="Hi", body_html="<b>x</b>",
                       cc="a@example.test, b@example.test", sender_name="FiberSync")

    assert client.send(email) == {"success": True, "id": "em_123"}
    request = captured[0]
    assert request.headers["Authorization"] == "Bearer re_test_key"
    body = json.loads(request.content)
    assert body["to"] == ["juan@example.test"]
    assert body["cc"] == ["a@example.test", "b@example.test"]
    assert body["from"].startswith("FiberSync <")
    assert "bcc" not in body


def test_resend_client_error(settings):
    client = ResendEmailClient(settings, http_client=httpx.Client(
        transport=httpx.MockTransport(lambda request: httpx.Response(422, text="bad from"))))
    result = client.send(EmailQueue(recipient_email="x@example.test", subject="s", body_html="b"))
    assert result == {"success": False, "error": "Resend returned 422: bad from"}


def test_sms_config_endpoint_hides_password(client):
    response = client.put("/api/sms/config", json={"email": "ops@example.test", "password": "pw", "code": "C1"})
    assert response.status_code == 200
    assert "password" not in response.json()["data"]
    assert client.get("/api/sms/config").json()["data"]["code"] == "C1"
