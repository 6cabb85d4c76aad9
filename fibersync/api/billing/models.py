# fibersync/api/billing/models.py
import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


# --- Billing accounts ---
class BillingAccountUpdate(BaseModel):
    plan_id: int | None = None
    billing_day: int | None = None
    billing_status_id: int | None = None
    account_balance: float | None = None
    date_installed: datetime | None = None
    pppoe_username: str | None = None


class BillingStatusRead(BaseModel):
    id: int
    status_name: str
    model_config = ConfigDict(from_attributes=True)


class TechnicalDetailUpdate(BaseModel):
    username: str | None = None
    username_status: str | None = None
    connection_type: str | None = None
    router_model: str | None = None
    router_modem_sn: str | None = None
    ip_address: str | None = None
    lcp: str | None = None
    nap: str | None = None
    port: str | None = None
    vlan: str | None = None
    lcpnap: str | None = None
    usage_type: str | None = None


# --- Invoices & transactions ---
class InvoiceCreate(BaseModel):
    account_no: str
    invoice_date: datetime | None = None
    invoice_balance: float | None = None
    others_and_basic_charges: float = 0.0
    service_charge: float = 0.0
    rebate: float = 0.0
    discounts: float = 0.0
    staggered: float = 0.0
    total_amount: float = 0.0
    received_payment: float = 0.0
    due_date: datetime | None = None
    status: str = "Unpaid"


class InvoiceUpdate(BaseModel):
    invoice_balance: float | None = None
    others_and_basic_charges: float | None = None
    service_charge: float | None = None
    rebate: float | None = None
    discounts: float | None = None
    staggered: float | None = None
    total_amount: float | None = None
    received_payment: float | None = None
    due_date: datetime | None = None
    status: str | None = None


class Invoice(BaseModel):
    id: int
    account_no: str
    invoice_date: datetime
    invoice_balance: float
    others_and_basic_charges: float
    service_charge: float
    rebate: float
    discounts: float
    staggered: float
    total_amount: float
    received_payment: float
    due_date: datetime | None = None
    status: str
    transaction_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class Transaction(BaseModel):
    id: int
    account_no: str
    transaction_type: str
    received_payment: float
    payment_method: str | None = None
    reference_no: str | None = None
    or_no: str | None = None
    remarks: str | None = None
    status: str
    payment_date: datetime | None = None
    date_processed: datetime | None = None
    created_by_user_id: uuid.UUID | None = None
    model_config = ConfigDict(from_attributes=True)


# --- Installments ---
class InstallmentCreate(BaseModel):
    account_no: str
    start_date: date
    months_to_pay: int = Field(ge=1)
    monthly_payment: float = Field(gt=0)
    remarks: str | None = None


class Installment(BaseModel):
    id: int
    account_no: str
    start_date: date
    months_to_pay: int
    monthly_payment: float
    total_balance: float
    status: str
    remarks: str | None = None
    created_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class InstallmentSchedule(BaseModel):
    id: int
    installment_id: int
    invoice_id: int | None = None
    installment_no: int
    due_date: date
    amount: float
    status: str
    model_config = ConfigDict(from_attributes=True)


class InstallmentScheduleUpdate(BaseModel):
    invoice_id: int | None = None
    status: str | None = None


# --- Billing runs ---
class BillingRunRequest(BaseModel):
    run_date: date | None = None


class InvoiceGenerationRequest(BillingRunRequest):
    notify: bool = True
