# fibersync/services/email_service.py
"""
Outgoing email: templates, a DB-backed queue, and delivery through the
Resend HTTP API. The scheduler drains the queue periodically.
"""
import base64
import logging
import os
from contextlib import nullcontext
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from sqlmodel import Session, select

from ..core.config import Settings, get_settings
from ..core.constants import EmailStatus
from ..models.notification import EmailQueue, EmailTemplate
from .base_service import BaseCRUDService
from .sms_service import render_placeholders

logger = logging.getLogger(__name__)

MAX_EMAIL_ATTEMPTS = 3


def _split_addresses(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [address.strip() for address in value.split(",") if address.strip()]


class ResendEmailClient:
    def __init__(self, settings: Optional[Settings] = None, http_client: Optional[httpx.Client] = None):
        self.settings = settings or get_settings()
        self.http_client = http_client

    def _open(self):
        if self.http_client is not None:
            return nullcontext(self.http_client)
        return httpx.Client(timeout=30)

    def send(self, email: EmailQueue) -> Dict[str, Any]:
        if not self.settings.resend_api_key:
            return {"success": False, "error": "RESEND_API_KEY is not configured"}

        sender = email.email_sender or self.settings.mail_from
        payload: Dict[str, Any] = {
            "from": f"{email.sender_name} <{sender}>" if email.sender_name else sender,
            "to": [email.recipient_email],
            "subject": email.subject,
            "html": email.body_html,
        }
        if _split_addresses(email.cc):
            payload["cc"] = _split_addresses(email.cc)
        if _split_addresses(email.bcc):
            payload["bcc"] = _split_addresses(email.bcc)
        if email.reply_to:
            payload["reply_to"] = email.reply_to
        if email.attachment_path:
            if not os.path.exists(email.attachment_path):
                return {"success": False, "error": f"Attachment not found: {email.attachment_path}"}
            with open(email.attachment_path, "rb") as fh:
                payload["attachments"] = [{
                    "filename": os.path.basename(email.attachment_path),
                    "content": base64.b64encode(fh.read()).decode(),
                }]

        try:
            with self._open() as client:
                response = client.post(
                    self.settings.resend_api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.settings.resend_api_key}"},
                )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            return {"success": False, "error": f"Resend returned {e.response.status_code}: {e.response.text}"}
        except httpx.RequestError as e:
            return {"success": False, "error": f"Connection error: {e}"}

        return {"success": True, "id": response.json().get("id")}


class EmailTemplateService(BaseCRUDService[EmailTemplate]):
    unique_fields = ("template_code",)
    order_by = "template_code"

    def __init__(self, session: Session):
        super().__init__(session, EmailTemplate)

    def get_active(self, template_code: str) -> Optional[EmailTemplate]:
        return self.session.exec(
            select(EmailTemplate).where(
                EmailTemplate.template_code == template_code, EmailTemplate.is_active == True  # noqa: E712
            )
        ).first()


class EmailQueueService:
    def __init__(self, session: Session, client: Optional[ResendEmailClient] = None,
                 settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()
        self.client = client or ResendEmailClient(self.settings)

    def queue_email(self, data: Dict[str, Any]) -> EmailQueue:
        if not data.get("recipient_email"):
            raise ValueError("recipient_email is required.")
        email = EmailQueue(
            account_no=data.get("account_no"),
            recipient_email=data["recipient_email"],
            cc=data.get("cc"),
            bcc=data.get("bcc"),
            subject=data["subject"],
            body_html=data["body_html"],
            attachment_path=data.get("attachment_path"),
            email_sender=data.get("email_sender"),
            reply_to=data.get("reply_to"),
            sender_name=data.get("sender_name"),
            status=EmailStatus.PENDING.value,
        )
        self.session.add(email)
        self.session.commit()
        self.session.refresh(email)
        logger.info(f"Email {email.id} queued for {email.recipient_email}: {email.subject}")
        return email

    def queue_from_template(self, template_code: str, data: Dict[str, Any]) -> Optional[EmailQueue]:
        """Queues the active template `template_code` with {{placeholders}} filled from `data`."""
        template = EmailTemplateService(self.session).get_active(template_code)
        if not template:
            logger.error(f"Email template '{template_code}' not found")
            return None

        return self.queue_email({
            "account_no": data.get("account_no"),
            "recipient_email": data.get("recipient_email"),
            "cc": data.get("cc") or template.cc,
            "bcc": data.get("bcc") or template.bcc,
            "subject": render_placeholders(template.subject_line, data),
            "body_html": render_placeholders(template.body_html, data),
            "attachment_path": data.get("attachment_path"),
            "email_sender": template.email_sender,
            "reply_to": template.reply_to,
            "sender_name": template.sender_name,
        })

    def _deliver(self, emails: List[EmailQueue]) -> Dict[str, int]:
        stats = {"processed": len(emails), "sent": 0, "failed": 0}
        for email in emails:
            result = self.client.send(email)
            email.attempts += 1
            email.updated_at = datetime.utcnow()
            if result["success"]:
                email.status = EmailStatus.SENT.value
                email.sent_at = datetime.utcnow()
                email.error_message = None
                stats["sent"] += 1
                if email.attachment_path and os.path.exists(email.attachment_path):
                    os.remove(email.attachment_path)
            else:
                email.status = EmailStatus.FAILED.value
                email.failed_at = datetime.utcnow()
                email.error_message = result["error"]
                stats["failed"] += 1
                logger.error(f"Email {email.id} failed: {result['error']}")
            self.session.add(email)
            self.session.commit()
        return stats

    def process_pending_emails(self, batch_size: Optional[int] = None) -> Dict[str, int]:
        emails = self.session.exec(
            select(EmailQueue)
            .where(EmailQueue.status == EmailStatus.PENDING.value)
            .order_by(EmailQueue.created_at.asc())
            .limit(batch_size or self.settings.email_batch_size)
        ).all()
        if emails:
            logger.info(f"Processing email queue ({len(emails)} pending)")
        return self._deliver(emails)

    def retry_failed_emails(self, max_attempts: int = MAX_EMAIL_ATTEMPTS, batch_size: int = 20) -> Dict[str, int]:
        emails = self.session.exec(
            select(EmailQueue)
            .where(EmailQueue.status == EmailStatus.FAILED.value, EmailQueue.attempts < max_attempts)
            .order_by(EmailQueue.created_at.asc())
            .limit(batch_size)
        ).all()
        return self._deliver(emails)

    def list_queue(self, status: Optional[str] = None, limit: int = 100) -> List[EmailQueue]:
        statement = select(EmailQueue)
        if status:
            statement = statement.where(EmailQueue.status == status)
        return self.session.exec(statement.order_by(EmailQueue.created_at.desc()).limit(limit)).all()
