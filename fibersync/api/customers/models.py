# fibersync/api/customers/models.py
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class CustomerBase(BaseModel):
    first_name: str
    middle_initial: str | None = None
    last_name: str
    email_address: str | None = None
    contact_number_primary: str | None = None
    contact_number_secondary: str | None = None
    address: str | None = None
    location: str | None = None
    barangay: str | None = None
    city: str | None = None
    region: str | None = None
    address_coordinates: str | None = None
    housing_status: str | None = None
    referred_by: str | None = None
    desired_plan: str | None = None
    house_front_picture_url: str | None = None


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    first_name: str | None = None
    middle_initial: str | None = None
    last_name: str | None = None
    email_address: str | None = None
    contact_number_primary: str | None = None
    contact_number_secondary: str | None = None
    address: str | None = None
    location: str | None = None
    barangay: str | None = None
    city: str | None = None
    region: str | None = None
    address_coordinates: str | None = None
    housing_status: str | None = None
    referred_by: str | None = None
    desired_plan: str | None = None
    house_front_picture_url: str | None = None


class Customer(CustomerBase):
    id: int
    full_name: str
    created_at: datetime | None = None
    created_by_user_id: uuid.UUID | None = None
    updated_at: datetime | None = None
    updated_by_user_id: uuid.UUID | None = None
    model_config = ConfigDict(from_attributes=True)
