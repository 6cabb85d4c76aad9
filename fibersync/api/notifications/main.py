# fibersync/api/notifications/main.py
"""SMS (Itexmo) and email (Resend) administration."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from ...core.audit import log_action
from ...core.users import require_admin, require_billing, require_staff
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.email_service import EmailQueueService, EmailTemplateService
from ...services.sms_service import ItexmoSmsService, SmsTemplateService
from ..crud import register_crud_routes
from .models import (
    EmailQueueCreate,
    EmailTemplateCreate,
    EmailTemplateUpdate,
    SmsBlastRequest,
    SmsConfigRead,
    SmsConfigUpdate,
    SmsSendRequest,
    SmsTemplateCreate,
    SmsTemplateUpdate,
)

router = APIRouter()


def get_sms_service(session: Session = Depends(get_sync_session)) -> ItexmoSmsService:
    return ItexmoSmsService(session)


def get_email_queue_service(session: Session = Depends(get_sync_session)) -> EmailQueueService:
    return EmailQueueService(session)


# --- SMS ---


@router.get("/sms/config")
def api_get_sms_config(
    service: ItexmoSmsService = Depends(get_sms_service),
    current_user: User = Depends(require_admin),
):
    config = service.get_config()
    return {"success": True, "data": SmsConfigRead.model_validate(config) if config else None}


@router.put("/sms/config")
def api_save_sms_config(
    payload: SmsConfigUpdate,
    request: Request,
    service: ItexmoSmsService = Depends(get_sms_service),
    current_user: User = Depends(require_admin),
):
    config = service.save_config(payload.model_dump())
    log_action("UPDATE", "sms_config", str(config.id), user=current_user, request=request)
    return {"success": True, "message": "SMS configuration saved", "data": SmsConfigRead.model_validate(config)}


@router.post("/sms/send")
def api_send_sms(
    payload: SmsSendRequest,
    service: ItexmoSmsService = Depends(get_sms_service),
    current_user: User = Depends(require_staff),
):
    result = service.send(payload.contact_no, payload.message)
    if not result["success"]:
        raise HTTPException(status_code=400, detail=result["error"])
    return result


@router.post("/sms/blast")
def api_sms_blast(
    payload: SmsBlastRequest,
    request: Request,
    service: ItexmoSmsService = Depends(get_sms_service),
    current_user: User = Depends(require_billing),
):
    result = service.send_blast(payload.filter_type, payload.filter_value, payload.message, user_id=current_user.id)
    log_action(
        "SMS_BLAST",
        "sms",
        f"{payload.filter_type}:{payload.filter_value}",
        user=current_user,
        request=request,
        details={k: v for k, v in result.items() if k != "success"},
        status="success" if result["success"] else "failure",
    )
    if not result["success"]:
        raise HTTPException(status_code=400, detail=result["error"])
    return result


@router.get("/sms/blast-logs")
def api_sms_blast_logs(
    limit: int = 100,
    service: ItexmoSmsService = Depends(get_sms_service),
    current_user: User = Depends(require_billing),
):
    logs = service.get_blast_logs(limit)
    return {"success": True, "data": logs, "count": len(logs)}


register_crud_routes(router, "/sms/templates", SmsTemplateService, SmsTemplateCreate, SmsTemplateUpdate,
                     require_staff, require_admin, "sms_template")


# --- Email ---

register_crud_routes(router, "/email/templates", EmailTemplateService, EmailTemplateCreate, EmailTemplateUpdate,
                     require_staff, require_admin, "email_template")


@router.get("/email/queue")
def api_list_email_queue(
    status_filter: Optional[str] = None,
    limit: int = 100,
    service: EmailQueueService = Depends(get_email_queue_service),
    current_user: User = Depends(require_staff),
):
    emails = service.list_queue(status_filter, limit)
    return {"success": True, "data": emails, "count": len(emails)}


@router.post("/email/queue", status_code=status.HTTP_201_CREATED)
def api_queue_email(
    payload: EmailQueueCreate,
    service: EmailQueueService = Depends(get_email_queue_service),
    current_user: User = Depends(require_staff),
):
    try:
        email = service.queue_email(payload.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"success": True, "message": "Email queued", "data": email}


@router.post("/email/process")
def api_process_email_queue(
    service: EmailQueueService = Depends(get_email_queue_service),
    current_user: User = Depends(require_admin),
):
    return {"success": True, "data": service.process_pending_emails()}


@router.post("/email/retry")
def api_retry_failed_emails(
    service: EmailQueueService = Depends(get_email_queue_service),
    current_user: User = Depends(require_admin),
):
    return {"success": True, "data": service.retry_failed_emails()}
