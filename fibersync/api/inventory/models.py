# fibersync/api/inventory/models.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str


class CategoryUpdate(BaseModel):
    name: Optional[str] = None


class ItemCreate(BaseModel):
    item_name: str
    item_description: Optional[str] = None
    supplier: Optional[str] = None
    quantity_alert: int = Field(default=0, ge=0)
    category: Optional[str] = None
    image: Optional[str] = None


class ItemUpdate(BaseModel):
    item_name: Optional[str] = None
    item_description: Optional[str] = None
    supplier: Optional[str] = None
    quantity_alert: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = None
    image: Optional[str] = None


class MovementCreate(BaseModel):
    log_type: str  # IN | OUT
    quantity: int
    account_no: Optional[str] = None
    requested_by: Optional[str] = None
    requested_with: Optional[str] = None
    remarks: Optional[str] = None
    date: Optional[datetime] = None
