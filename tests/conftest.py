# tests/conftest.py
import os
import tempfile

# Environment must be in place before fibersync modules are imported
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-jwt-signing-only")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DATABASE_URL_SYNC", "sqlite://")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="fibersync-logs-"))
os.environ.setdefault("XENDIT_CALLBACK_TOKEN", "test-callback-token")
os.environ.setdefault("ALLOWED_HOSTS", "testserver,localhost")

import json
import uuid

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

import fibersync.models  # noqa: F401
from fibersync.core.config import Settings
from fibersync.core.constants import BillingStatus
from fibersync.core.limiter import limiter
from fibersync.core.users import current_active_user
from fibersync.db.engine_sync import get_sync_session
from fibersync.main import app
from fibersync.models.billing_account import BillingAccount, TechnicalDetail
from fibersync.models.customer import Customer
from fibersync.models.plan import Plan
from fibersync.models.radius import RadiusConfig
from fibersync.models.user import User
from fibersync.services.billing_account_service import BillingAccountService
from fibersync.services.settings_service import BillingConfig


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="db_session")
def db_session_fixture(engine):
    with Session(engine) as session:
        BillingAccountService(session).seed_statuses()
        yield session


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        xendit_api_key="xnd_test_key",
        xendit_callback_token="test-callback-token",
        xendit_api_url="https://xendit.test",
        app_url="https://billing.example.test",
        payer_fallback_email="noreply@example.test",
        radius_retry_delay=0,
        sms_retry_delay=0,
        resend_api_key="re_test_key",
    )


@pytest.fixture
def admin_user():
    return User(
        id=uuid.uuid4(),
        email="admin@example.test",
        username="admin",
        hashed_password="x",
        role="admin",
        is_active=True,
        is_superuser=True,
    )


@pytest.fixture(name="client")
def client_fixture(db_session, admin_user):
    def get_session_override():
        yield db_session

    app.dependency_overrides[get_sync_session] = get_session_override
    app.dependency_overrides[current_active_user] = lambda: admin_user
    limiter.enabled = False
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def make_account(db_session):
    """Creates customer + plan + billing account (+ technical details) in one go."""

    def _make(
        account_no="0001",
        balance=0.0,
        plan_name="FIBER1599 50Mbps",
        username="delacruz09171234567",
        status_id=BillingStatus.ACTIVE,
        with_technical=True,
        **customer_fields,
    ):
        customer = Customer(
            first_name=customer_fields.pop("first_name", "Juan"),
            last_name=customer_fields.pop("last_name", "Dela Cruz"),
            contact_number_primary=customer_fields.pop("contact_number_primary", "09171234567"),
            email_address=customer_fields.pop("email_address", "juan@example.test"),
            **customer_fields,
        )
        db_session.add(customer)
        plan = None
        if plan_name:
            plan = db_session.exec(select(Plan).where(Plan.plan_name == plan_name)).first()
            if plan is None:
                plan = Plan(plan_name=plan_name, price=1599.0)
                db_session.add(plan)
                db_session.flush()
        db_session.flush()

        account = BillingAccount(
            customer_id=customer.id,
            account_no=account_no,
            plan_id=plan.id if plan else None,
            billing_status_id=status_id,
            account_balance=balance,
            pppoe_username=username,
        )
        db_session.add(account)
        db_session.flush()
        if with_technical:
            db_session.add(TechnicalDetail(
                account_id=account.id,
                account_no=account_no,
                username=username,
                lcp="LCP-01",
                nap="NAP-01",
                port="P1",
                vlan="100",
                router_modem_sn="SN-OLD",
            ))
        db_session.commit()
        db_session.refresh(account)
        return account

    return _make


@pytest.fixture
def radius_endpoint(db_session):
    endpoint = RadiusConfig(ssl_type="https", ip="10.0.0.1", port=443, username="api", password="secret")
    db_session.add(endpoint)
    db_session.commit()
    db_session.refresh(endpoint)
    return endpoint


class FakeRadiusServer:
    """
    In-memory stand-in for the RADIUS user-manager REST API, served through
    httpx.MockTransport. Records every request it receives.
    """

    def __init__(self, users=None, sessions=None):
        self.users = users or {}
        self.sessions = sessions or {}
        self.requests = []
        self.fail_status = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path, request.url.params.get("user")))
        if self.fail_status:
            return httpx.Response(self.fail_status)

        path = request.url.path
        if path == "/rest/user-manage/user" and request.method == "GET":
            return httpx.Response(200, json=list(self.users.values()))
        if path.startswith("/rest/user-manage/user/"):
            key = path.rsplit("/", 1)[-1]
            if request.method == "GET":
                user = self.users.get(key)
                return httpx.Response(200, json=user) if user else httpx.Response(404, json={"error": "not found"})
            if request.method == "PATCH":
                for user in self.users.values():
                    if user[".id"] == key:
                        user.update(json.loads(request.content))
                        return httpx.Response(200, json=user)
                return httpx.Response(404)
        if path == "/rest/user-manage/session" and request.method == "GET":
            user = request.url.params.get("user")
            if user is None:
                return httpx.Response(200, json=[
                    {**active, "user": name} for name, listed in self.sessions.items() for active in listed
                ])
            return httpx.Response(200, json=self.sessions.get(user, []))
        if path.startswith("/rest/user-manage/session/") and request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(404)

    def calls(self, method):
        return [r for r in self.requests if r[0] == method]


@pytest.fixture
def fake_radius():
    return FakeRadiusServer(
        users={"delacruz09171234567": {".id": "*1A", "name": "delacruz09171234567", "group": "FIBER1599"}},
        sessions={"delacruz09171234567": [{".id": "*S1"}]},
    )


@pytest.fixture
def radius_http(fake_radius):
    with httpx.Client(transport=httpx.MockTransport(fake_radius.handler)) as client:
        yield client


@pytest.fixture
def http_clients(monkeypatch):
    """
    Routes every httpx.Client the services open themselves through a mock
    handler and records the clients, so tests can check they were closed.
    """
    real_client = httpx.Client
    created = []

    def install(handler):
        def factory(*args, **kwargs):
            kwargs.pop("verify", None)
            client = real_client(*args, transport=httpx.MockTransport(handler), **kwargs)
            created.append(client)
            return client

        monkeypatch.setattr(httpx, "Client", factory)
        return created

    return install


@pytest.fixture
def billing_config():
    return BillingConfig(
        advance_generation_days=7,
        due_days_add=7,
        overdue_offset=1,
        dc_notice_offset=3,
        dc_actual_offset=4,
        pullout_offset=30,
        disconnection_fee=0.0,
    )


class RecordingSms:
    """Stands in for ItexmoSmsService.send and keeps every message."""

    def __init__(self, success=True):
        self.success = success
        self.sent = []

    def send(self, contact_no, message):
        self.sent.append((contact_no, message))
        if self.success:
            return {"success": True}
        return {"success": False, "error": "gateway down"}


@pytest.fixture
def recording_sms():
    return RecordingSms()


@pytest.fixture
def failing_sms():
    return RecordingSms(success=False)
