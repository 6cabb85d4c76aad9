# tests/test_job_orders.py
import pytest
from sqlmodel import select

from fibersync.core.constants import BillingStatus
from fibersync.models.billing_account import BillingAccount, TechnicalDetail
from fibersync.models.customer import Customer
from fibersync.models.plan import Plan
from fibersync.models.setting import Setting
from fibersync.services.billing_account_service import BillingAccountService
from fibersync.services.job_order_service import JobOrderService

APPLICANT = {
    "first_name": "Maria",
    "last_name": "Santos",
    "mobile_number": "09181112222",
    "email_address": "maria@example.test",
    "desired_plan": "FIBER1599 50Mbps",
    "installation_fee": 1500.0,
    "lcp": "LCP-03",
    "nap": "NAP-07",
    "port": "P4",
    "vlan": "200",
    "modem_router_sn": "SN-NEW",
}


@pytest.mark.parametrize(
    "existing, prefix, expected",
    [
        ([], None, "0001"),
        (["0001", "0009"], None, "0010"),
        (["ATS0009", "0042"], "ATS", "ATS0010"),
        (["ATS99999"], "ATS", "ATS100000"),
        (["0001"], "ATS", "ATS0001"),
    ],
)
def test_generate_account_number(db_session, make_account, existing, prefix, expected):
    for account_no in existing:
        make_account(account_no=account_no, username=None, with_technical=False)
    assert BillingAccountService(db_session).generate_account_number(prefix) == expected


def test_approve_creates_subscriber(db_session):
    db_session.add(Plan(plan_name="FIBER1599 50Mbps", price=1599.0))
    db_session.add(Setting(key="account_number_prefix", value="FS"))
    db_session.commit()
    service = JobOrderService(db_session)
    job_order = service.create_job_order(APPLICANT)

    result = service.approve_job_order(job_order.id)

    assert result["account_no"] == "FS0001"
    assert result["pppoe_username"] == "santos09181112222"
    assert len(result["pppoe_password"]) >= 6

    account = db_session.exec(select(BillingAccount)).one()
    assert account.billing_status_id == BillingStatus.ACTIVE
    assert account.account_balance == 1500.0
    assert account.pppoe_username == "santos09181112222"
    customer = db_session.get(Customer, account.customer_id)
    assert customer.full_name == "Maria Santos"
    technical = db_session.exec(select(TechnicalDetail)).one()
    assert (technical.lcp, technical.port, technical.router_modem_sn) == ("LCP-03", "P4", "SN-NEW")

    db_session.refresh(job_order)
    assert job_order.billing_status == "Done"
    assert job_order.account_no == "FS0001"


def test_approve_twice_is_rejected(db_session):
    service = JobOrderService(db_session)
    job_order = service.create_job_order(APPLICANT)
    service.approve_job_order(job_order.id)
    with pytest.raises(ValueError):
        service.approve_job_order(job_order.id)


def test_username_collision_gets_suffix(db_session, make_account):
    make_account(account_no="0001", username="santos09181112222")
    service = JobOrderService(db_session)
    job_order = service.create_job_order(APPLICANT)

    result = service.approve_job_order(job_order.id)

    assert result["pppoe_username"] == "santos091811122221"
    assert result["account_no"] == "0002"


def test_approved_job_order_cannot_be_deleted(db_session):
    service = JobOrderService(db_session)
    job_order = service.create_job_order(APPLICANT)
    service.approve_job_order(job_order.id)
    with pytest.raises(ValueError):
        service.delete_job_order(job_order.id)


def test_create_requires_names(db_session):
    with pytest.raises(ValueError):
        JobOrderService(db_session).create_job_order({"first_name": "Maria"})


def test_update_ignores_protected_fields(db_session):
    service = JobOrderService(db_session)
    job_order = service.create_job_order(APPLICANT)
    updated = service.update_job_order(job_order.id, {"account_no": "HACK", "onsite_status": "Done"})
    assert updated.account_no is None
    assert updated.onsite_status == "Done"


def test_unknown_job_order(db_session):
    with pytest.raises(FileNotFoundError):
        JobOrderService(db_session).get_job_order(42)


def test_approve_endpoint(client):
    created = client.post("/api/job-orders", json={"first_name": "Maria", "last_name": "Santos",
                                                   "mobile_number": "09181112222"}).json()["data"]

    response = client.post(f"/api/job-orders/{created['id']}/approve")
    assert response.status_code == 200
    assert response.json()["data"]["account_no"] == "0001"

    assert client.post(f"/api/job-orders/{created['id']}/approve").status_code == 422
    assert client.delete(f"/api/job-orders/{created['id']}").status_code == 422
    assert client.post("/api/job-orders/404/approve").status_code == 404
