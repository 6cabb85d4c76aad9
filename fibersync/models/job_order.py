# fibersync/models/job_order.py
"""
Job order: an installation request for a new subscriber. Approving it
creates the customer, billing account and technical details.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class JobOrder(SQLModel, table=True):
    __tablename__ = "job_orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: Optional[datetime] = Field(default_factory=datetime.utcnow)

    # Applicant
    first_name: str = Field(nullable=False)
    middle_initial: Optional[str] = Field(default=None)
    last_name: str = Field(nullable=False)
    email_address: Optional[str] = Field(default=None)
    mobile_number: Optional[str] = Field(default=None)
    secondary_mobile_number: Optional[str] = Field(default=None)
    installation_address: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None)
    barangay: Optional[str] = Field(default=None)
    city: Optional[str] = Field(default=None)
    region: Optional[str] = Field(default=None)
    address_coordinates: Optional[str] = Field(default=None)
    referred_by: Optional[str] = Field(default=None)
    desired_plan: Optional[str] = Field(default=None)

    # Installation
    date_installed: Optional[datetime] = Field(default=None)
    installation_fee: float = Field(default=0.0)
    billing_day: Optional[int] = Field(default=None)
    modem_router_sn: Optional[str] = Field(default=None)
    router_model: Optional[str] = Field(default=None)
    connection_type: Optional[str] = Field(default=None)
    lcp: Optional[str] = Field(default=None)
    nap: Optional[str] = Field(default=None)
    lcpnap: Optional[str] = Field(default=None)
    port: Optional[str] = Field(default=None)
    vlan: Optional[str] = Field(default=None)
    ip_address: Optional[str] = Field(default=None)
    usage_type: Optional[str] = Field(default=None)
    username_status: Optional[str] = Field(default=None)
    tech_input_username: Optional[str] = Field(default=None)
    visit_by: Optional[str] = Field(default=None)
    visit_with: Optional[str] = Field(default=None)
    onsite_status: Optional[str] = Field(default="Pending")
    onsite_remarks: Optional[str] = Field(default=None)

    # Outcome of approval
    billing_status: str = Field(default="Pending")  # Pending, Done
    account_id: Optional[int] = Field(default=None, foreign_key="billing_accounts.id")
    account_no: Optional[str] = Field(default=None, index=True)
    pppoe_username: Optional[str] = Field(default=None, index=True)
    pppoe_password: Optional[str] = Field(default=None)

    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    created_by_user_id: Optional[uuid.UUID] = Field(default=None)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_by_user_id: Optional[uuid.UUID] = Field(default=None)
