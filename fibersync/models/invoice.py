# fibersync/models/invoice.py
"""
Billing records: invoices, payment transactions and installment plans.
"""

import uuid
from datetime import date, datetime

from sqlmodel import Field, SQLModel


class Invoice(SQLModel, table=True):
    __tablename__ = "invoices"

    id: int | None = Field(default=None, primary_key=True)
    account_no: str = Field(index=True, nullable=False)
    invoice_date: datetime = Field(default_factory=datetime.utcnow, index=True)
    invoice_balance: float = Field(default=0.0)
    others_and_basic_charges: float = Field(default=0.0)
    service_charge: float = Field(default=0.0)
    rebate: float = Field(default=0.0)
    discounts: float = Field(default=0.0)
    staggered: float = Field(default=0.0)
    total_amount: float = Field(default=0.0)
    received_payment: float = Field(default=0.0)
    due_date: datetime | None = Field(default=None)
    status: str = Field(default="Unpaid", index=True)  # Unpaid, Partial, Paid
    transaction_id: str | None = Field(default=None)

    created_at: datetime | None = Field(default_factory=datetime.utcnow)
    created_by_user_id: uuid.UUID | None = Field(default=None)
    updated_at: datetime | None = Field(default_factory=datetime.utcnow)
    updated_by_user_id: uuid.UUID | None = Field(default=None)


class Transaction(SQLModel, table=True):
    __tablename__ = "transactions"

    id: int | None = Field(default=None, primary_key=True)
    account_no: str = Field(index=True, nullable=False)
    transaction_type: str = Field(default="Recurring Fee")
    received_payment: float = Field(default=0.0)
    payment_method: str | None = Field(default=None)
    reference_no: str | None = Field(default=None, index=True)
    or_no: str | None = Field(default=None)
    remarks: str | None = Field(default=None)
    status: str = Field(default="Pending")  # Pending, Approved
    payment_date: datetime | None = Field(default_factory=datetime.utcnow)
    date_processed: datetime | None = Field(default=None)

    created_at: datetime | None = Field(default_factory=datetime.utcnow)
    created_by_user_id: uuid.UUID | None = Field(default=None)
    updated_at: datetime | None = Field(default_factory=datetime.utcnow)
    updated_by_user_id: uuid.UUID | None = Field(default=None)


class Installment(SQLModel, table=True):
    """An amount (e.g. installation fee) split over monthly payments."""

    __tablename__ = "installments"

    id: int | None = Field(default=None, primary_key=True)
    account_no: str = Field(index=True, nullable=False)
    start_date: date = Field(nullable=False)
    months_to_pay: int = Field(nullable=False)
    monthly_payment: float = Field(nullable=False)
    total_balance: float = Field(default=0.0)
    status: str = Field(default="active")
    remarks: str | None = Field(default=None)

    created_at: datetime | None = Field(default_factory=datetime.utcnow)
    created_by_user_id: uuid.UUID | None = Field(default=None)


class InstallmentSchedule(SQLModel, table=True):
    __tablename__ = "installment_schedules"

    id: int | None = Field(default=None, primary_key=True)
    installment_id: int = Field(foreign_key="installments.id", nullable=False, index=True)
    invoice_id: int | None = Field(default=None, foreign_key="invoices.id")
    installment_no: int = Field(nullable=False)
    due_date: date = Field(nullable=False)
    amount: float = Field(nullable=False)
    status: str = Field(default="pending")  # pending, paid

    created_at: datetime | None = Field(default_factory=datetime.utcnow)
    created_by_user_id: uuid.UUID | None = Field(default=None)
