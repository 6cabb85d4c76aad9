# tests/test_service_orders.py
from datetime import datetime

import pytest
from sqlmodel import select

from fibersync.core.constants import BillingStatus, LifecycleAction, LifecycleResult
from fibersync.models.billing_account import TechnicalDetail
from fibersync.models.notification import EmailQueue, EmailTemplate
from fibersync.models.plan import Plan
from fibersync.models.radius import DisconnectionLog, ReconnectionLog
from fibersync.models.service_order import ServiceOrder
from fibersync.services.service_order_service import (
    ServiceOrderService,
    became,
    determine_lifecycle_action,
    generate_ticket_id,
)


class FakeRadius:
    def __init__(self, status="success"):
        self.status = status
        self.calls = []

    def reconnect_user(self, username, plan, account_no="", updated_by="System"):
        self.calls.append(("reconnect", username, plan))
        return {"status": self.status, "message": "ok" if self.status == "success" else "boom", "output": ""}

    def disconnect_user(self, username, account_no="", remarks="", updated_by="System"):
        self.calls.append(("disconnect", username, remarks))
        return {"status": self.status, "message": "ok" if self.status == "success" else "boom", "output": ""}


class FakeSms:
    def __init__(self):
        self.sent = []

    def send(self, contact_no, message):
        self.sent.append((contact_no, message))
        return {"success": True}


@pytest.fixture
def radius():
    return FakeRadius()


@pytest.fixture
def sms():
    return FakeSms()


@pytest.fixture
def service(db_session, radius, sms):
    return ServiceOrderService(db_session, radius=radius, sms=sms)


def open_order(service, concern, **fields):
    return service.create_service_order({"account_no": "0001", "concern": concern, **fields})


@pytest.mark.parametrize(
    "concern, repair, prev_support, support, prev_visit, visit, expected",
    [
        ("Reconnect", None, "Open", "Resolved", "Pending", "Pending", LifecycleAction.RECONNECTION),
        ("disconnect", None, "Open", "resolved", "Pending", "Pending", LifecycleAction.DISCONNECTION),
        ("Pullout", None, "In Progress", "RESOLVED", None, None, LifecycleAction.PULLOUT),
        ("Migrate", None, "Open", "Resolved", None, None, LifecycleAction.MIGRATION),
        ("Repair", "Pullout", "Open", "Open", "Pending", "Done", LifecycleAction.PULLOUT),
        ("Repair", "Migrate", "Open", "Open", "Pending", "done", LifecycleAction.MIGRATION),
        # Already resolved: no transition
        ("Reconnect", None, "Resolved", "Resolved", "Pending", "Pending", None),
        ("Repair", "Pullout", "Open", "Open", "Done", "Done", None),
        ("Repair", "Resplice", "Open", "Open", "Pending", "Done", None),
        ("No Internet", None, "Open", "Resolved", "Pending", "Pending", None),
    ],
)
def test_determine_lifecycle_action(concern, repair, prev_support, support, prev_visit, visit, expected):
    assert determine_lifecycle_action(concern, repair, prev_support, support, prev_visit, visit) == expected


def test_became():
    assert became(None, "Resolved", "Resolved")
    assert became("open", " resolved ", "Resolved")
    assert not became("Resolved", "resolved", "Resolved")
    assert not became("Open", "Closed", "Resolved")


def test_generate_ticket_id(db_session):
    now = datetime(2026, 3, 1)
    assert generate_ticket_id(db_session, now) == "2026000001"
    db_session.add(ServiceOrder(ticket_id="2026000041", account_no="0001", concern="Repair"))
    db_session.add(ServiceOrder(ticket_id="2025000099", account_no="0001", concern="Repair"))
    db_session.commit()
    assert generate_ticket_id(db_session, now) == "2026000042"


def test_create_requires_account_and_concern(service):
    with pytest.raises(ValueError):
        service.create_service_order({"concern": "Repair"})
    with pytest.raises(ValueError):
        service.create_service_order({"account_no": "0001"})


def test_resolving_reconnect_order_reconnects(service, radius, sms, db_session, make_account):
    account = make_account(status_id=BillingStatus.DISCONNECTED)
    order = open_order(service, "Reconnect")

    result = service.update_service_order(order.id, {"support_status": "Resolved"})

    assert result["network_operation"] == {"action": "reconnection", "result": "success"}
    assert radius.calls == [("reconnect", "delacruz09171234567", "FIBER1599 50Mbps")]
    db_session.refresh(account)
    assert account.billing_status_id == BillingStatus.ACTIVE
    log = db_session.exec(select(ReconnectionLog)).one()
    assert log.remarks == f"Service order {order.ticket_id}"
    assert sms.sent and sms.sent[0][0] == "09171234567"
    assert "reconnected" in sms.sent[0][1]


def test_update_without_transition_does_nothing(service, radius, make_account):
    make_account()
    order = open_order(service, "Reconnect", support_status="Resolved")

    result = service.update_service_order(order.id, {"support_remarks": "called customer"})

    assert result["network_operation"] is None
    assert radius.calls == []


def test_disconnection_sets_disconnected_status(service, radius, db_session, make_account):
    account = make_account()
    order = open_order(service, "Disconnect")

    result = service.update_service_order(order.id, {"support_status": "resolved"})

    assert result["network_operation"]["result"] == "success"
    assert radius.calls == [("disconnect", "delacruz09171234567", "Disconnected")]
    db_session.refresh(account)
    assert account.billing_status_id == BillingStatus.DISCONNECTED
    assert db_session.exec(select(DisconnectionLog)).one().account_no == "0001"


def test_pullout_through_visit_status(service, radius, db_session, make_account):
    account = make_account()
    order = open_order(service, "Repair", repair_category="Pullout")

    result = service.update_service_order(order.id, {"visit_status": "Done"})

    assert result["network_operation"] == {"action": "pullout", "result": "success"}
    assert radius.calls == [("disconnect", "delacruz09171234567", "Pullout")]
    db_session.refresh(account)
    assert account.billing_status_id == BillingStatus.PULLOUT


def test_migration_moves_account_to_new_plan(service, radius, db_session, make_account):
    account = make_account()
    new_plan = Plan(plan_name="FIBER2499 100Mbps", price=2499.0)
    db_session.add(new_plan)
    db_session.commit()
    order = open_order(service, "Migrate", new_plan="FIBER2499 100Mbps")

    result = service.update_service_order(order.id, {"support_status": "Resolved"})

    assert result["network_operation"]["result"] == "success"
    assert radius.calls == [("reconnect", "delacruz09171234567", "FIBER2499 100Mbps")]
    db_session.refresh(account)
    assert account.plan_id == new_plan.id
    assert account.billing_status_id == BillingStatus.ACTIVE


def test_no_username(service, radius, make_account):
    make_account(username=None, with_technical=False)
    order = open_order(service, "Reconnect")
    result = service.update_service_order(order.id, {"support_status": "Resolved"})
    assert result["network_operation"]["result"] == LifecycleResult.NO_USERNAME.value
    assert radius.calls == []


def test_no_plan(service, radius, make_account):
    make_account(plan_name=None)
    order = open_order(service, "Reconnect")
    result = service.update_service_order(order.id, {"support_status": "Resolved"})
    assert result["network_operation"]["result"] == "no_plan"


def test_radius_failure_leaves_status(service, radius, db_session, make_account):
    radius.status = "error"
    account = make_account(status_id=BillingStatus.DISCONNECTED)
    order = open_order(service, "Reconnect")

    result = service.update_service_order(order.id, {"support_status": "Resolved"})

    assert result["network_operation"]["result"] == "failed"
    db_session.refresh(account)
    assert account.billing_status_id == BillingStatus.DISCONNECTED


def test_missing_account_fails(service):
    order = open_order(service, "Reconnect")
    result = service.update_service_order(order.id, {"support_status": "Resolved"})
    assert result["network_operation"]["result"] == "failed"


def test_service_charge_is_added_once(service, db_session, make_account):
    account = make_account(balance=100.0)
    order = open_order(service, "No Internet", service_charge=500.0)

    service.update_service_order(order.id, {"support_status": "Resolved"})
    service.update_service_order(order.id, {"support_status": "Open"})
    service.update_service_order(order.id, {"support_status": "Resolved"})

    db_session.refresh(account)
    assert account.account_balance == 600.0
    assert db_session.get(ServiceOrder, order.id).status == "used"


def test_line_change_snapshots_old_values(service, db_session, make_account):
    make_account()
    order = open_order(service, "Transfer LCP/NAP/PORT")

    result = service.update_service_order(order.id, {"new_lcp": "LCP-02", "new_port": "P7"})

    updated = result["order"]
    assert (updated.old_lcp, updated.old_port) == ("LCP-01", "P1")
    assert updated.old_nap is None
    assert updated.old_router_modem_sn is None
    technical = db_session.exec(select(TechnicalDetail)).one()
    db_session.refresh(technical)
    assert (technical.lcp, technical.nap, technical.port) == ("LCP-02", "NAP-01", "P7")


def test_later_line_change_keeps_earlier_snapshots(service, db_session, make_account):
    make_account()
    order = open_order(service, "Transfer LCP/NAP/PORT")

    service.update_service_order(order.id, {"new_lcp": "LCP-02"})
    updated = service.update_service_order(order.id, {"new_vlan": "V200"})["order"]

    assert updated.old_lcp == "LCP-01"
    assert updated.old_vlan == "100"
    technical = db_session.exec(select(TechnicalDetail)).one()
    db_session.refresh(technical)
    assert (technical.lcp, technical.vlan) == ("LCP-02", "V200")


def test_email_notice_uses_action_template(service, db_session, make_account):
    db_session.add(EmailTemplate(template_code="DISCONNECTION", subject_line="Account {{account_no}} disconnected",
                                 body_html="<p>Hi {{customer_name}}</p>"))
    db_session.commit()
    make_account()
    order = open_order(service, "Disconnect")

    service.update_service_order(order.id, {"support_status": "Resolved"})

    email = db_session.exec(select(EmailQueue)).one()
    assert email.recipient_email == "juan@example.test"
    assert email.subject == "Account 0001 disconnected"
    assert email.body_html == "<p>Hi Juan Dela Cruz</p>"


def test_update_unknown_order(service):
    with pytest.raises(FileNotFoundError):
        service.update_service_order(999, {"support_status": "Resolved"})


def test_list_filters_and_joins(service, make_account):
    make_account()
    open_order(service, "Repair", assigned_email="tech@example.test")
    open_order(service, "Reconnect")

    orders = service.list_service_orders(assigned_email="tech@example.test")
    assert len(orders) == 1
    assert orders[0]["full_name"] == "Juan Dela Cruz"
    assert orders[0]["lcp"] == "LCP-01"


def test_service_order_api_without_network_action(client, make_account):
    make_account(balance=0.0)
    response = client.post("/api/service-orders", json={"account_no": "0001", "concern": "No Internet",
                                                        "service_charge": 150.0})
    assert response.status_code == 201
    order = response.json()["data"]
    assert len(order["ticket_id"]) == 10

    response = client.put(f"/api/service-orders/{order['id']}", json={"support_status": "Resolved"})
    body = response.json()
    assert body["network_operation"] is None
    assert body["data"]["status"] == "used"

    assert client.get("/api/service-orders/999").status_code == 404
    assert "Pullout" in client.get("/api/service-orders/repair-categories").json()["data"]
