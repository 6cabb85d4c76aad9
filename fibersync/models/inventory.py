# fibersync/models/inventory.py
"""Inventory of installation materials and their stock movements."""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class InventoryCategory(SQLModel, table=True):
    __tablename__ = "inventory_categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True, nullable=False)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)


class InventoryItem(SQLModel, table=True):
    __tablename__ = "inventory_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    item_name: str = Field(unique=True, index=True, nullable=False)
    item_description: Optional[str] = Field(default=None)
    supplier: Optional[str] = Field(default=None)
    quantity_alert: int = Field(default=0)
    category: Optional[str] = Field(default=None, index=True)
    image: Optional[str] = Field(default=None)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)


class InventoryLog(SQLModel, table=True):
    """A stock movement. log_type is IN (received) or OUT (issued)."""

    __tablename__ = "inventory_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    item_id: int = Field(foreign_key="inventory_items.id", nullable=False, index=True)
    log_type: str = Field(nullable=False)
    quantity: int = Field(nullable=False)
    account_no: Optional[str] = Field(default=None)
    requested_by: Optional[str] = Field(default=None)
    requested_with: Optional[str] = Field(default=None)
    remarks: Optional[str] = Field(default=None)
    date: Optional[datetime] = Field(default_factory=datetime.utcnow)
