# fibersync/api/job_orders/models.py
from datetime import datetime

from pydantic import BaseModel


class JobOrderFields(BaseModel):
    middle_initial: str | None = None
    email_address: str | None = None
    mobile_number: str | None = None
    secondary_mobile_number: str | None = None
    installation_address: str | None = None
    location: str | None = None
    barangay: str | None = None
    city: str | None = None
    region: str | None = None
    address_coordinates: str | None = None
    referred_by: str | None = None
    desired_plan: str | None = None
    date_installed: datetime | None = None
    installation_fee: float | None = None
    billing_day: int | None = None
    modem_router_sn: str | None = None
    router_model: str | None = None
    connection_type: str | None = None
    lcp: str | None = None
    nap: str | None = None
    lcpnap: str | None = None
    port: str | None = None
    vlan: str | None = None
    ip_address: str | None = None
    usage_type: str | None = None
    username_status: str | None = None
    tech_input_username: str | None = None
    visit_by: str | None = None
    visit_with: str | None = None
    onsite_status: str | None = None
    onsite_remarks: str | None = None


class JobOrderCreate(JobOrderFields):
    first_name: str
    last_name: str


class JobOrderUpdate(JobOrderFields):
    first_name: str | None = None
    last_name: str | None = None
