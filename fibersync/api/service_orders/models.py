# fibersync/api/service_orders/models.py
from pydantic import BaseModel


class ServiceOrderFields(BaseModel):
    concern_remarks: str | None = None
    support_status: str | None = None
    priority_level: str | None = None
    requested_by: str | None = None
    assigned_email: str | None = None
    support_remarks: str | None = None
    service_charge: float | None = None
    visit_status: str | None = None
    visit_by_user: str | None = None
    visit_with: str | None = None
    visit_remarks: str | None = None
    repair_category: str | None = None
    new_router_modem_sn: str | None = None
    new_lcp: str | None = None
    new_nap: str | None = None
    new_port: str | None = None
    new_vlan: str | None = None
    new_lcpnap: str | None = None
    new_plan: str | None = None
    router_model: str | None = None
    client_signature_url: str | None = None
    image1_url: str | None = None
    image2_url: str | None = None
    image3_url: str | None = None


class ServiceOrderCreate(ServiceOrderFields):
    account_no: str | None = None
    concern: str | None = None


class ServiceOrderUpdate(ServiceOrderFields):
    concern: str | None = None
