# fibersync/models/billing_account.py
"""
Billing account, its status lookup table, and the technical (network)
details of the subscriber line.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class BillingStatusType(SQLModel, table=True):
    """Lookup table. 1=Active, 2=Pending, 3=Inactive, 4=Disconnected, 5=Pullout."""

    __tablename__ = "billing_status"

    id: int = Field(primary_key=True)
    status_name: str = Field(nullable=False)


class BillingAccount(SQLModel, table=True):
    __tablename__ = "billing_accounts"

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: int = Field(foreign_key="customers.id", nullable=False, index=True)
    account_no: str = Field(unique=True, index=True, nullable=False)
    plan_id: Optional[int] = Field(default=None, foreign_key="plans.id")
    date_installed: Optional[datetime] = Field(default=None)
    billing_day: Optional[int] = Field(default=None)
    billing_status_id: int = Field(default=2, foreign_key="billing_status.id")
    account_balance: float = Field(default=0.0)
    balance_update_date: Optional[datetime] = Field(default=None)
    pppoe_username: Optional[str] = Field(default=None, index=True)
    status: Optional[str] = Field(default=None)  # free-text status written by RADIUS operations

    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    created_by_user_id: Optional[uuid.UUID] = Field(default=None)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_by_user_id: Optional[uuid.UUID] = Field(default=None)


class TechnicalDetail(SQLModel, table=True):
    __tablename__ = "technical_details"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: Optional[int] = Field(default=None, foreign_key="billing_accounts.id", index=True)
    account_no: str = Field(index=True, nullable=False)
    username: Optional[str] = Field(default=None, index=True)  # PPPoE username
    username_status: Optional[str] = Field(default=None)
    connection_type: Optional[str] = Field(default=None)
    router_model: Optional[str] = Field(default=None)
    router_modem_sn: Optional[str] = Field(default=None)
    ip_address: Optional[str] = Field(default=None)
    lcp: Optional[str] = Field(default=None)
    nap: Optional[str] = Field(default=None)
    port: Optional[str] = Field(default=None)
    vlan: Optional[str] = Field(default=None)
    lcpnap: Optional[str] = Field(default=None)
    usage_type: Optional[str] = Field(default=None)

    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    created_by_user_id: Optional[uuid.UUID] = Field(default=None)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_by_user_id: Optional[uuid.UUID] = Field(default=None)
