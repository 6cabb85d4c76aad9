# fibersync/api/payments/main.py
"""
Customer payment portal (public) and the Xendit webhook.
Responses use the portal envelope {"status": "success"|"error", ...}.
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlmodel import Session

from ...core.limiter import limiter
from ...core.users import require_billing
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.payment_service import PaymentService
from ...services.payment_worker import PaymentWorker
from ...services.xendit_client import PaymentGatewayError
from .models import AccountRequest, PaymentCreateRequest, PaymentStatusRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def get_payment_service(session: Session = Depends(get_sync_session)) -> PaymentService:
    return PaymentService(session)


def get_payment_worker(session: Session = Depends(get_sync_session)) -> PaymentWorker:
    return PaymentWorker(session)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


def _success(**data) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_200_OK, content={"status": "success", **data})


@router.post("/payments/create")
@limiter.limit("10/minute")
def api_create_payment(
    request: Request,
    payload: PaymentCreateRequest,
    service: PaymentService = Depends(get_payment_service),
):
    try:
        return _success(**service.create_payment(payload.account_no, payload.amount))
    except ValueError as e:
        return _error(str(e), status.HTTP_422_UNPROCESSABLE_ENTITY)
    except FileNotFoundError as e:
        return _error(str(e), status.HTTP_404_NOT_FOUND)
    except PaymentGatewayError as e:
        return _error(str(e), status.HTTP_500_INTERNAL_SERVER_ERROR)


async def _handle_webhook(request: Request, service: PaymentService) -> JSONResponse:
    # Token first, body second
    try:
        service.verify_callback_token(request.headers.get("x-callback-token"))
    except PermissionError:
        logger.warning("Xendit webhook rejected: invalid callback token")
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"message": "Forbidden"})

    try:
        payload = await request.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        payload = {}

    try:
        await run_in_threadpool(service.handle_webhook, payload)
    except Exception as e:
        # Xendit retries non-2xx answers; the row stays as it was
        service.session.rollback()
        logger.error(f"Xendit webhook processing failed: {e}")
    return JSONResponse(status_code=status.HTTP_200_OK, content={"message": "OK"})


@router.post("/payments/webhook")
async def api_payment_webhook(
    request: Request,
    service: PaymentService = Depends(get_payment_service),
):
    return await _handle_webhook(request, service)


@router.post("/xendit-webhook")
async def api_xendit_webhook(
    request: Request,
    service: PaymentService = Depends(get_payment_service),
):
    return await _handle_webhook(request, service)


@router.get("/xendit-webhook")
def api_xendit_webhook_alive():
    return {"message": "Xendit webhook endpoint is alive"}


@router.get("/payments/webhook-info")
def api_webhook_info(
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(require_billing),
):
    return _success(**service.webhook_info())


@router.post("/payments/status")
def api_payment_status(
    payload: PaymentStatusRequest,
    service: PaymentService = Depends(get_payment_service),
):
    if not payload.reference_no:
        return _error("Reference number is required", status.HTTP_400_BAD_REQUEST)
    try:
        payment = service.check_payment_status(payload.reference_no)
    except FileNotFoundError as e:
        return _error(str(e), status.HTTP_404_NOT_FOUND)
    return _success(payment=_jsonable(payment))


@router.post("/payments/check-pending")
def api_check_pending(
    payload: AccountRequest,
    service: PaymentService = Depends(get_payment_service),
):
    if not payload.account_no:
        return _error("Account number is required", status.HTTP_400_BAD_REQUEST)
    pending = service.check_pending_payment(payload.account_no)
    return _success(pending_payment=_jsonable(pending) if pending else None)


@router.post("/payments/account-balance")
def api_account_balance(
    payload: AccountRequest,
    service: PaymentService = Depends(get_payment_service),
):
    if not payload.account_no:
        return _error("Account number is required", status.HTTP_400_BAD_REQUEST)
    try:
        return _success(data=service.get_account_balance(payload.account_no))
    except FileNotFoundError as e:
        return _error(str(e), status.HTTP_404_NOT_FOUND)


def _jsonable(payment: dict) -> dict:
    date = payment.get("payment_date")
    return {**payment, "payment_date": date.isoformat() if date else None}


# --- Worker control (staff) ---


@router.post("/payments/worker/run")
def api_run_payment_worker(
    worker: PaymentWorker = Depends(get_payment_worker),
    current_user: User = Depends(require_billing),
):
    stats = worker.process_payments()
    if stats["skipped"]:
        return {"success": False, "message": "Payment worker is already running", "data": stats}
    return {"success": True, "message": "Payment worker run completed", "data": stats}


@router.get("/payments/worker/stats")
def api_payment_worker_stats(
    worker: PaymentWorker = Depends(get_payment_worker),
    current_user: User = Depends(require_billing),
):
    return {"success": True, "data": worker.get_statistics()}


@router.post("/payments/worker/retry")
def api_retry_payments(
    worker: PaymentWorker = Depends(get_payment_worker),
    current_user: User = Depends(require_billing),
):
    requeued = worker.retry_failed_payments()
    return {"success": True, "message": f"{requeued} payment(s) queued for retry", "data": {"requeued": requeued}}
