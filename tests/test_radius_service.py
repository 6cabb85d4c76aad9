# tests/test_radius_service.py
import httpx
import pytest
from sqlmodel import select

from fibersync.core.constants import BillingStatus, ReconnectResult
from fibersync.models.billing_account import TechnicalDetail
from fibersync.models.radius import ReconnectionLog
from fibersync.services.radius_service import (
    RadiusClient,
    RadiusConfigService,
    RadiusOperationsService,
    RadiusReconnectionService,
    clean_plan_group,
)


@pytest.fixture
def operations(db_session, settings, radius_http):
    client = RadiusClient(retries=3, retry_delay=0, http_client=radius_http)
    return RadiusOperationsService(db_session, client=client, settings=settings)


def test_clean_plan_group():
    assert clean_plan_group("FIBER1599 50Mbps") == "FIBER1599"
    assert clean_plan_group("  RESI999  ") == "RESI999"


def test_disconnect_moves_user_and_kills_sessions(operations, fake_radius, radius_endpoint, make_account):
    account = make_account()

    result = operations.disconnect_user("delacruz09171234567", account_no="0001")

    assert result["status"] == "success"
    assert fake_radius.users["delacruz09171234567"]["group"] == "Disconnected"
    assert [path for _, path, _ in fake_radius.calls("PATCH")] == ["/rest/user-manage/user/*1A"]
    assert [path for _, path, _ in fake_radius.calls("DELETE")] == ["/rest/user-manage/session/*S1"]
    assert ("GET", "/rest/user-manage/session", "delacruz09171234567") in fake_radius.requests
    operations.session.refresh(account)
    assert account.status == "Inactive"


def test_pullout_remark_stores_pullout_status(operations, radius_endpoint, make_account):
    account = make_account()
    operations.disconnect_user("delacruz09171234567", account_no="0001", remarks="Pullout")
    operations.session.refresh(account)
    assert account.status == "Pullout"


def test_disconnect_already_disconnected_still_kills_sessions(operations, fake_radius, radius_endpoint):
    fake_radius.users["delacruz09171234567"]["group"] = "Disconnected"

    result = operations.disconnect_user("delacruz09171234567")

    assert result["status"] == "success"
    assert fake_radius.calls("PATCH") == []
    assert len(fake_radius.calls("DELETE")) == 1


def test_unknown_user_is_an_error(operations, fake_radius, radius_endpoint):
    result = operations.disconnect_user("ghost")
    assert result["status"] == "error"
    assert "not found" in result["message"]
    # 404 is not retried
    assert len(fake_radius.calls("GET")) == 1


def test_missing_configuration(operations):
    result = operations.disconnect_user("delacruz09171234567")
    assert result == {
        "status": "error",
        "message": "No RADIUS configuration found",
        "output": "Error: No RADIUS configuration found",
    }


def test_username_required(operations, radius_endpoint):
    assert operations.disconnect_user("")["status"] == "error"
    assert operations.reconnect_user("", "FIBER1599")["status"] == "error"


def test_server_errors_are_retried(operations, fake_radius, radius_endpoint):
    fake_radius.fail_status = 503
    result = operations.disconnect_user("delacruz09171234567")
    assert result["status"] == "error"
    assert len(fake_radius.requests) == 3


def test_transport_errors_are_retried(radius_endpoint):
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("refused", request=request)

    client = RadiusClient(retries=2, retry_delay=0, http_client=httpx.Client(transport=httpx.MockTransport(handler)))
    assert client.call(radius_endpoint, "GET", "/rest/user-manage/user/x") is False
    assert len(attempts) == 2


def test_client_opens_and_closes_a_connection_per_call(radius_endpoint, fake_radius, http_clients):
    created = http_clients(fake_radius.handler)
    client = RadiusClient(retries=1, retry_delay=0)

    assert client.call(radius_endpoint, "GET", "/rest/user-manage/user/delacruz09171234567")["group"] == "FIBER1599"
    client.call(radius_endpoint, "GET", "/rest/user-manage/session?user=delacruz09171234567")

    assert len(created) == 2
    assert all(c.is_closed for c in created)


def test_reconnect_requires_plan(operations, fake_radius, radius_endpoint):
    result = operations.reconnect_user("delacruz09171234567", "  ")
    assert result["status"] == "error"
    assert "Plan is required" in result["message"]
    assert fake_radius.requests == []


def test_reconnect_moves_user_to_plan_group(operations, fake_radius, radius_endpoint, make_account):
    fake_radius.users["delacruz09171234567"]["group"] = "Disconnected"
    account = make_account()

    result = operations.reconnect_user("delacruz09171234567", "FIBER1599 50Mbps", account_no="0001")

    assert result["status"] == "success"
    assert fake_radius.users["delacruz09171234567"]["group"] == "FIBER1599"
    assert len(fake_radius.calls("DELETE")) == 1
    operations.session.refresh(account)
    assert account.status == "Active"


def test_reconnect_in_same_group_keeps_session(operations, fake_radius, radius_endpoint):
    result = operations.reconnect_user("delacruz09171234567", "FIBER1599 50Mbps")
    assert result["status"] == "success"
    assert fake_radius.calls("PATCH") == []
    assert fake_radius.calls("DELETE") == []


def test_update_credentials(operations, fake_radius, radius_endpoint, make_account, db_session):
    account = make_account()

    result = operations.update_credentials("delacruz09171234567", "newuser", "s3cret", account_no="0001")

    assert result["status"] == "success"
    assert fake_radius.users["delacruz09171234567"]["name"] == "newuser"
    db_session.refresh(account)
    assert account.pppoe_username == "newuser"
    technical = db_session.exec(select(TechnicalDetail)).one()
    assert technical.username == "newuser"


def test_update_credentials_requires_new_values(operations, radius_endpoint):
    result = operations.update_credentials("delacruz09171234567", "", "")
    assert result["message"] == "New username and password are required"


def test_auto_reconnect_success(db_session, operations, fake_radius, radius_endpoint, make_account):
    fake_radius.users["delacruz09171234567"]["group"] = "Disconnected"
    account = make_account(balance=0.0, status_id=BillingStatus.DISCONNECTED)

    result = RadiusReconnectionService(db_session, operations).attempt_reconnect("0001")

    assert result == ReconnectResult.SUCCESS
    db_session.refresh(account)
    assert account.billing_status_id == BillingStatus.ACTIVE
    log = db_session.exec(select(ReconnectionLog)).one()
    assert (log.account_no, log.username) == ("0001", "delacruz09171234567")


@pytest.mark.parametrize(
    "balance, with_config, expected",
    [
        (150.0, True, ReconnectResult.BALANCE_REMAINING),
        (0.0, False, ReconnectResult.NO_RADIUS_CONFIG),
    ],
)
def test_auto_reconnect_preconditions(db_session, operations, make_account, request, balance, with_config, expected):
    if with_config:
        request.getfixturevalue("radius_endpoint")
    make_account(balance=balance)
    assert RadiusReconnectionService(db_session, operations).attempt_reconnect("0001") == expected


def test_auto_reconnect_unknown_account(db_session, operations):
    result = RadiusReconnectionService(db_session, operations).attempt_reconnect("9999")
    assert result == ReconnectResult.ACCOUNT_NOT_FOUND


def test_auto_reconnect_without_username(db_session, operations, radius_endpoint, make_account):
    make_account(username=None, with_technical=False)
    result = RadiusReconnectionService(db_session, operations).attempt_reconnect("0001")
    assert result == ReconnectResult.NO_USERNAME


def test_auto_reconnect_reports_failure(db_session, operations, fake_radius, radius_endpoint, make_account):
    fake_radius.fail_status = 500
    make_account()
    result = RadiusReconnectionService(db_session, operations).attempt_reconnect("0001")
    assert result == ReconnectResult.FAILED


def test_radius_config_validates_ssl_type(db_session):
    service = RadiusConfigService(db_session)
    with pytest.raises(ValueError):
        service.create({"ssl_type": "ftp", "ip": "10.0.0.2", "port": 80, "username": "u", "password": "p"})
    endpoint = service.create({"ssl_type": "http", "ip": "10.0.0.2", "port": 80, "username": "u", "password": "p"})
    assert endpoint.base_url == "http://10.0.0.2:80"
