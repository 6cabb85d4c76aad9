# fibersync/models/service_order.py
"""
Service order (support ticket) raised against a billing account.

Some field transitions drive network operations on the subscriber's
PPPoE account; see ServiceOrderService.update_service_order.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class ServiceOrder(SQLModel, table=True):
    __tablename__ = "service_orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    ticket_id: str = Field(unique=True, index=True, nullable=False)  # e.g. "2026000001"
    account_no: str = Field(index=True, nullable=False)
    timestamp: Optional[datetime] = Field(default_factory=datetime.utcnow)

    # Support desk
    concern: str = Field(nullable=False)
    concern_remarks: Optional[str] = Field(default=None)
    support_status: str = Field(default="Open", index=True)
    priority_level: str = Field(default="Medium")
    requested_by: Optional[str] = Field(default=None)
    assigned_email: Optional[str] = Field(default=None, index=True)
    support_remarks: Optional[str] = Field(default=None)
    service_charge: float = Field(default=0.0)
    status: str = Field(default="unused")  # "used" once the service charge hit the balance

    # Field visit
    visit_status: str = Field(default="Pending")
    visit_by_user: Optional[str] = Field(default=None)
    visit_with: Optional[str] = Field(default=None)
    visit_remarks: Optional[str] = Field(default=None)
    repair_category: Optional[str] = Field(default=None)

    # Line changes
    new_router_modem_sn: Optional[str] = Field(default=None)
    new_lcp: Optional[str] = Field(default=None)
    new_nap: Optional[str] = Field(default=None)
    new_port: Optional[str] = Field(default=None)
    new_vlan: Optional[str] = Field(default=None)
    new_lcpnap: Optional[str] = Field(default=None)
    new_plan: Optional[str] = Field(default=None)
    router_model: Optional[str] = Field(default=None)
    old_router_modem_sn: Optional[str] = Field(default=None)
    old_lcp: Optional[str] = Field(default=None)
    old_nap: Optional[str] = Field(default=None)
    old_port: Optional[str] = Field(default=None)
    old_vlan: Optional[str] = Field(default=None)
    old_lcpnap: Optional[str] = Field(default=None)

    # Proof of service
    client_signature_url: Optional[str] = Field(default=None)
    image1_url: Optional[str] = Field(default=None)
    image2_url: Optional[str] = Field(default=None)
    image3_url: Optional[str] = Field(default=None)

    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow, index=True)
    created_by_user_id: Optional[uuid.UUID] = Field(default=None)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_by_user_id: Optional[uuid.UUID] = Field(default=None)
