# fibersync/models/payment.py
"""
Online payment tracking.

- PendingPayment: a Xendit hosted invoice awaiting (or done with) webhook
  confirmation, keyed by reference_no.
- WorkerLock: single-row mutex so only one payment worker run applies
  payments at a time.
"""

from datetime import datetime

from sqlmodel import Field, SQLModel


class PendingPayment(SQLModel, table=True):
    __tablename__ = "pending_payments"

    id: int | None = Field(default=None, primary_key=True)
    reference_no: str = Field(unique=True, index=True, nullable=False)
    account_no: str = Field(index=True, nullable=False)
    amount: float = Field(nullable=False)
    status: str = Field(default="PENDING", index=True)
    provider: str = Field(default="XENDIT")
    plan: str | None = Field(default=None)
    payment_id: str | None = Field(default=None)
    payment_method_id: str | None = Field(default=None)
    payment_url: str | None = Field(default=None)
    json_payload: str | None = Field(default=None)
    callback_payload: str | None = Field(default=None)
    reconnect_status: str | None = Field(default=None)
    payment_date: datetime = Field(default_factory=datetime.utcnow, index=True)
    last_attempt_at: datetime | None = Field(default=None)
    updated_at: datetime | None = Field(default_factory=datetime.utcnow)


class WorkerLock(SQLModel, table=True):
    __tablename__ = "worker_locks"

    lock_name: str = Field(primary_key=True)
    locked_by: str | None = Field(default=None)
    locked_at: datetime = Field(default_factory=datetime.utcnow)
