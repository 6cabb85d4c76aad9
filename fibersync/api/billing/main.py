# fibersync/api/billing/main.py
"""
Billing accounts, technical details, invoices, transactions, installments
and manual triggers of the daily billing runs.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from ...core.audit import log_action
from ...core.users import require_admin, require_billing, require_staff, require_technician
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.auto_disconnect_service import AutoDisconnectService
from ...services.billing_account_service import BillingAccountService
from ...services.billing_generation_service import BillingGenerationService
from ...services.billing_notification_service import BillingNotificationService
from ...services.invoice_service import InstallmentService, InvoiceService, TransactionService
from ...services.settings_service import SettingsService
from .models import (
    BillingAccountUpdate,
    BillingRunRequest,
    BillingStatusRead,
    Installment,
    InstallmentCreate,
    InstallmentSchedule,
    InstallmentScheduleUpdate,
    Invoice,
    InvoiceCreate,
    InvoiceGenerationRequest,
    InvoiceUpdate,
    TechnicalDetailUpdate,
    Transaction,
)

router = APIRouter()


# --- Dependency Injectors ---
def get_account_service(session: Session = Depends(get_sync_session)) -> BillingAccountService:
    return BillingAccountService(session)


def get_invoice_service(session: Session = Depends(get_sync_session)) -> InvoiceService:
    return InvoiceService(session)


def get_transaction_service(session: Session = Depends(get_sync_session)) -> TransactionService:
    return TransactionService(session)


def get_installment_service(session: Session = Depends(get_sync_session)) -> InstallmentService:
    return InstallmentService(session)


# --- Billing accounts ---


@router.get("/billing-statuses")
def api_get_billing_statuses(
    service: BillingAccountService = Depends(get_account_service),
    current_user: User = Depends(require_staff),
):
    statuses = [BillingStatusRead.model_validate(s) for s in service.get_statuses()]
    return {"success": True, "data": statuses}


@router.get("/billing-accounts")
def api_get_billing_accounts(
    billing_status_id: Optional[int] = None,
    search: Optional[str] = None,
    service: BillingAccountService = Depends(get_account_service),
    current_user: User = Depends(require_billing),
):
    accounts = service.list_accounts(billing_status_id, search)
    return {"success": True, "data": accounts, "count": len(accounts)}


@router.get("/billing-accounts/{account_no}")
def api_get_billing_account(
    account_no: str,
    service: BillingAccountService = Depends(get_account_service),
    current_user: User = Depends(require_staff),
):
    try:
        return {"success": True, "data": service.get_account_details(account_no)}
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/billing-accounts/{account_no}")
def api_update_billing_account(
    account_no: str,
    update: BillingAccountUpdate,
    request: Request,
    service: BillingAccountService = Depends(get_account_service),
    current_user: User = Depends(require_billing),
):
    changes = update.model_dump(exclude_unset=True)
    try:
        account = service.update_account(account_no, changes, current_user.id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if "account_balance" in changes or "billing_status_id" in changes:
        log_action("UPDATE", "billing_account", account_no, user=current_user, request=request,
                   details={k: v for k, v in changes.items() if k in ("account_balance", "billing_status_id")})
    return {"success": True, "message": "Billing account updated successfully", "data": account}


@router.put("/billing-accounts/{account_no}/technical-details")
def api_update_technical_details(
    account_no: str,
    update: TechnicalDetailUpdate,
    service: BillingAccountService = Depends(get_account_service),
    current_user: User = Depends(require_technician),
):
    try:
        technical = service.update_technical_detail(account_no, update.model_dump(exclude_unset=True), current_user.id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "message": "Technical details updated successfully", "data": technical}


# --- Invoices ---


@router.get("/invoices")
def api_get_invoices(
    account_no: Optional[str] = None,
    status: Optional[str] = None,
    service: InvoiceService = Depends(get_invoice_service),
    current_user: User = Depends(require_billing),
):
    invoices = [Invoice.model_validate(i) for i in service.list_invoices(account_no, status)]
    return {"success": True, "data": invoices, "count": len(invoices)}


@router.get("/invoices/{invoice_id}")
def api_get_invoice(
    invoice_id: int,
    service: InvoiceService = Depends(get_invoice_service),
    current_user: User = Depends(require_billing),
):
    return {"success": True, "data": Invoice.model_validate(service.get_by_id(invoice_id))}


@router.post("/invoices", status_code=status.HTTP_201_CREATED)
def api_create_invoice(
    invoice: InvoiceCreate,
    service: InvoiceService = Depends(get_invoice_service),
    current_user: User = Depends(require_billing),
):
    try:
        created = service.create_invoice(invoice.model_dump(exclude_none=True), current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"success": True, "message": "Invoice created successfully", "data": Invoice.model_validate(created)}


@router.put("/invoices/{invoice_id}")
def api_update_invoice(
    invoice_id: int,
    invoice: InvoiceUpdate,
    service: InvoiceService = Depends(get_invoice_service),
    current_user: User = Depends(require_billing),
):
    try:
        updated = service.update_invoice(invoice_id, invoice.model_dump(exclude_unset=True), current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"success": True, "message": "Invoice updated successfully", "data": Invoice.model_validate(updated)}


# --- Transactions ---


@router.get("/transactions")
def api_get_transactions(
    account_no: Optional[str] = None,
    status: Optional[str] = None,
    service: TransactionService = Depends(get_transaction_service),
    current_user: User = Depends(require_billing),
):
    transactions = [Transaction.model_validate(t) for t in service.list_transactions(account_no, status)]
    return {"success": True, "data": transactions, "count": len(transactions)}


@router.get("/transactions/{transaction_id}")
def api_get_transaction(
    transaction_id: int,
    service: TransactionService = Depends(get_transaction_service),
    current_user: User = Depends(require_billing),
):
    return {"success": True, "data": Transaction.model_validate(service.get_by_id(transaction_id))}


# --- Installments ---


@router.post("/installments", status_code=status.HTTP_201_CREATED)
def api_create_installment(
    installment: InstallmentCreate,
    service: InstallmentService = Depends(get_installment_service),
    current_user: User = Depends(require_billing),
):
    try:
        created = service.create_installment(installment.model_dump(), current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"success": True, "message": "Installment created successfully", "data": Installment.model_validate(created)}


@router.post("/installments/{installment_id}/generate-schedules", status_code=status.HTTP_201_CREATED)
def api_generate_schedules(
    installment_id: int,
    service: InstallmentService = Depends(get_installment_service),
    current_user: User = Depends(require_billing),
):
    try:
        schedules = service.generate_schedules(installment_id, current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "success": True,
        "message": f"{len(schedules)} installment schedules generated",
        "data": [InstallmentSchedule.model_validate(s) for s in schedules],
    }


@router.get("/installment-schedules")
def api_get_schedules(
    installment_id: Optional[int] = None,
    account_no: Optional[str] = None,
    service: InstallmentService = Depends(get_installment_service),
    current_user: User = Depends(require_billing),
):
    schedules = [InstallmentSchedule.model_validate(s) for s in service.get_schedules(installment_id, account_no)]
    return {"success": True, "data": schedules, "count": len(schedules)}


@router.put("/installment-schedules/{schedule_id}")
def api_update_schedule(
    schedule_id: int,
    update: InstallmentScheduleUpdate,
    service: InstallmentService = Depends(get_installment_service),
    current_user: User = Depends(require_billing),
):
    try:
        schedule = service.update_schedule(schedule_id, update.model_dump(exclude_unset=True))
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "data": InstallmentSchedule.model_validate(schedule)}


# --- Billing runs ---
# Same runs as the scheduler, for a given date


@router.get("/billing/config")
def api_get_billing_config(
    session: Session = Depends(get_sync_session),
    current_user: User = Depends(require_billing),
):
    return {"success": True, "data": SettingsService(session).get_billing_config()}


@router.post("/billing/generate")
def api_generate_invoices(
    payload: InvoiceGenerationRequest,
    request: Request,
    session: Session = Depends(get_sync_session),
    current_user: User = Depends(require_billing),
):
    stats = BillingGenerationService(session).generate_for_date(payload.run_date, current_user.id, payload.notify)
    log_action("GENERATE_INVOICES", "invoice", stats["billing_date"], user=current_user, request=request,
               details={"generated": stats["generated"], "failed": stats["failed"]})
    return {"success": True, "data": stats}


@router.post("/billing/notices/overdue")
def api_send_overdue_notices(
    payload: BillingRunRequest,
    session: Session = Depends(get_sync_session),
    current_user: User = Depends(require_billing),
):
    return {"success": True, "data": BillingNotificationService(session).send_overdue_notices(payload.run_date)}


@router.post("/billing/notices/dc")
def api_send_dc_notices(
    payload: BillingRunRequest,
    session: Session = Depends(get_sync_session),
    current_user: User = Depends(require_billing),
):
    return {"success": True, "data": BillingNotificationService(session).send_dc_notices(payload.run_date)}


@router.post("/billing/auto-disconnect")
def api_auto_disconnect(
    payload: BillingRunRequest,
    request: Request,
    session: Session = Depends(get_sync_session),
    current_user: User = Depends(require_admin),
):
    stats = AutoDisconnectService(session).process_auto_disconnect(payload.run_date)
    if stats["skipped_run"]:
        raise HTTPException(status_code=409, detail="Auto disconnect is already running")
    log_action("AUTO_DISCONNECT", "billing_account", "batch", user=current_user, request=request,
               details={"disconnected": stats["disconnected"], "failed": stats["failed"]})
    return {"success": True, "data": stats}


@router.post("/billing/auto-pullout")
def api_auto_pullout(
    payload: BillingRunRequest,
    request: Request,
    session: Session = Depends(get_sync_session),
    current_user: User = Depends(require_admin),
):
    stats = AutoDisconnectService(session).process_auto_pullout(payload.run_date)
    log_action("AUTO_PULLOUT", "service_order", "batch", user=current_user, request=request,
               details={"created": stats["created"]})
    return {"success": True, "data": stats}
