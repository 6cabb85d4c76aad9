# fibersync/models/customer.py
"""
Customer model: the subscriber's personal and address details.
Billing data lives in billing_accounts (one customer, one or more accounts).
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Customer(SQLModel, table=True):
    __tablename__ = "customers"

    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str = Field(nullable=False)
    middle_initial: Optional[str] = Field(default=None)
    last_name: str = Field(nullable=False)
    email_address: Optional[str] = Field(default=None, index=True)
    contact_number_primary: Optional[str] = Field(default=None, index=True)
    contact_number_secondary: Optional[str] = Field(default=None)
    address: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None)
    barangay: Optional[str] = Field(default=None)
    city: Optional[str] = Field(default=None)
    region: Optional[str] = Field(default=None)
    address_coordinates: Optional[str] = Field(default=None)
    housing_status: Optional[str] = Field(default=None)
    referred_by: Optional[str] = Field(default=None)
    desired_plan: Optional[str] = Field(default=None)
    house_front_picture_url: Optional[str] = Field(default=None)

    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    created_by_user_id: Optional[uuid.UUID] = Field(default=None)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_by_user_id: Optional[uuid.UUID] = Field(default=None)

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_initial, self.last_name]
        return " ".join(p.strip() for p in parts if p and p.strip())
