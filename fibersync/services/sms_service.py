# fibersync/services/sms_service.py
"""
SMS notices through the Itexmo broadcast API, SMS templates and blasts.
"""
import logging
import time
from contextlib import nullcontext
from typing import Any, Dict, List, Optional

import httpx
from sqlmodel import Session, select

from ..core.config import Settings, get_settings
from ..core.constants import BillingStatus
from ..models.billing_account import BillingAccount, TechnicalDetail
from ..models.customer import Customer
from ..models.notification import SmsBlastLog, SmsConfig, SmsTemplate
from ..utils.security import decrypt_data, encrypt_data
from .base_service import BaseCRUDService

logger = logging.getLogger(__name__)

# Used when no active template of the type exists
DEFAULT_MESSAGES = {
    "reconnection": "Dear {{customer_name}}, your internet service for account {{account_no}} "
                    "has been reconnected. Thank you!",
    "disconnection": "DISCONNECTION NOTICE: Dear {{customer_name}}, your account ({{account_no}}) has been "
                     "disconnected due to non-payment. Outstanding balance: PHP {{balance}}. "
                     "Please settle immediately to restore service. Thank you!",
    "pullout": "Dear {{customer_name}}, the equipment of account {{account_no}} has been pulled out "
               "and the service is now terminated. Thank you for being our subscriber.",
    "migration": "Dear {{customer_name}}, account {{account_no}} has been migrated to {{plan}}. "
                 "Enjoy your new service!",
    "statement": "Dear {{customer_name}}, your billing statement for account {{account_no}} is ready. "
                 "Amount due: PHP {{amount_due}}. Due date: {{due_date}}. Pay online at {{payment_link}}",
    "overdue": "OVERDUE NOTICE: Dear {{customer_name}}, account {{account_no}} has an overdue balance of "
               "PHP {{amount_due}}. Original due date: {{due_date}}. Please settle immediately to avoid "
               "service interruption.",
    "dc_notice": "DISCONNECTION NOTICE: Dear {{customer_name}}, account {{account_no}} will be disconnected "
                 "on {{dc_date}}. Outstanding balance: PHP {{amount_due}}. Pay now to avoid service interruption.",
}

BLAST_FILTERS = ("Barangay", "LCP", "LCPNAP", "Location")


def render_placeholders(message: str, context: Dict[str, Any]) -> str:
    for key, value in context.items():
        if value is None:
            continue
        message = message.replace("{{" + key + "}}", str(value))
    return message


def normalize_number(contact_no: Optional[str]) -> str:
    """09XXXXXXXXX form; a 10-digit number starting with 9 gets a leading 0."""
    contact_no = (contact_no or "").strip()
    if len(contact_no) == 10 and contact_no.startswith("9"):
        contact_no = "0" + contact_no
    return contact_no


class SmsTemplateService(BaseCRUDService[SmsTemplate]):
    order_by = "template_type"

    def __init__(self, session: Session):
        super().__init__(session, SmsTemplate)

    def get_active(self, template_type: str) -> Optional[SmsTemplate]:
        return self.session.exec(
            select(SmsTemplate).where(SmsTemplate.template_type == template_type, SmsTemplate.is_active == True)  # noqa: E712
        ).first()

    def build_message(self, template_type: str, context: Dict[str, Any]) -> str:
        """
        Renders the active template of `template_type`. Placeholders:
        {{customer_name}}, {{account_no}}, {{amount_due}}, {{balance}}, {{plan}},
        and for billing notices {{due_date}}, {{dc_date}} and {{payment_link}}.
        """
        template = self.get_active(template_type)
        if template:
            body = template.message_content
        else:
            logger.debug(f"No active SMS template '{template_type}', using built-in text")
            body = DEFAULT_MESSAGES.get(template_type, "")
        if "balance" in context and "amount_due" not in context:
            context = {**context, "amount_due": context["balance"]}
        return render_placeholders(body, context)


class ItexmoSmsService:
    def __init__(self, session: Session, settings: Optional[Settings] = None,
                 http_client: Optional[httpx.Client] = None):
        self.session = session
        self.settings = settings or get_settings()
        self.http_client = http_client

    # --- Gateway configuration ---

    def get_config(self) -> Optional[SmsConfig]:
        return self.session.exec(select(SmsConfig).order_by(SmsConfig.id)).first()

    def save_config(self, data: Dict[str, Any]) -> SmsConfig:
        config = self.get_config() or SmsConfig(email="", password="", code="")
        for key, value in data.items():
            if key == "password":
                if not value:
                    continue
                value = encrypt_data(value)
            setattr(config, key, value)
        self.session.add(config)
        self.session.commit()
        self.session.refresh(config)
        return config

    # --- Sending ---

    def _open(self):
        if self.http_client is not None:
            return nullcontext(self.http_client)
        return httpx.Client(timeout=self.settings.sms_timeout)

    def _post_with_retry(self, payload: Dict[str, Any]) -> str:
        retries = max(self.settings.sms_retries, 1)
        last_error = None
        with self._open() as client:
            for attempt in range(1, retries + 1):
                try:
                    response = client.post(self.settings.itexmo_api_url, json=payload)
                    if response.is_success:
                        return response.text or "Success: SMS Sent"
                    last_error = f"HTTP {response.status_code}"
                except httpx.HTTPError as e:
                    last_error = str(e)
                logger.warning(f"Itexmo attempt {attempt}/{retries} failed: {last_error}")
                if attempt < retries:
                    time.sleep(self.settings.sms_retry_delay)
        raise RuntimeError(f"SMS sending failed after {retries} attempts ({last_error})")

    def send(self, contact_no: Optional[str], message: str) -> Dict[str, Any]:
        config = self.get_config()
        if not config:
            return {"success": False, "error": "SMS configuration not found. Please configure SMS settings."}

        number = normalize_number(contact_no)
        if not number or not message:
            return {"success": False, "error": "Contact number and message are required"}

        payload = {
            "Email": config.email,
            "Password": decrypt_data(config.password),
            "ApiCode": config.code,
            "Recipients": [number],
            "Message": message,
            "SenderId": config.sender,
        }
        try:
            result = self._post_with_retry(payload)
        except RuntimeError as e:
            logger.error(f"SMS to {number} failed: {e}")
            return {"success": False, "error": str(e)}

        logger.info(f"SMS sent to {number} ({len(message)} chars)")
        return {"success": True, "message": "SMS sent successfully", "response": result}

    def _blast_recipients(self, filter_type: str, filter_value: str) -> List[Dict[str, str]]:
        statement = (
            select(BillingAccount.account_no, Customer.contact_number_primary)
            .join(Customer, BillingAccount.customer_id == Customer.id)
            .where(BillingAccount.billing_status_id == BillingStatus.ACTIVE)
        )
        if filter_type == "Barangay":
            statement = statement.where(Customer.barangay == filter_value)
        elif filter_type == "Location":
            statement = statement.where(Customer.location == filter_value)
        elif filter_type in ("LCP", "LCPNAP"):
            column = TechnicalDetail.lcp if filter_type == "LCP" else TechnicalDetail.lcpnap
            statement = statement.join(
                TechnicalDetail, TechnicalDetail.account_no == BillingAccount.account_no
            ).where(column == filter_value)
        else:
            raise ValueError("Invalid filter type")
        return [
            {"account_no": account_no, "contact_no": contact_no}
            for account_no, contact_no in self.session.exec(statement).all()
        ]

    def send_blast(self, filter_type: str, filter_value: str, message: str, user_id=None) -> Dict[str, Any]:
        """Sends `message` to every active account matching the filter. {{Account_No}} is personalised."""
        if not self.get_config():
            return {"success": False, "error": "SMS configuration not found"}
        if not filter_type or not filter_value or not message:
            return {"success": False, "error": "Filter type, filter value, and message are required"}
        if filter_type not in BLAST_FILTERS:
            return {"success": False, "error": "Invalid filter type"}

        recipients = self._blast_recipients(filter_type, filter_value)
        if not recipients:
            return {"success": False, "error": "No recipients found for the specified filter"}

        sent = failed = 0
        for recipient in recipients:
            personalised = message.replace("{{Account_No}}", recipient["account_no"])
            if self.send(recipient["contact_no"], personalised)["success"]:
                sent += 1
            else:
                failed += 1

        self.session.add(
            SmsBlastLog(
                message=message,
                filter_type=filter_type,
                filter_value=filter_value,
                message_count=sent,
                failed_count=failed,
                credit_used=sent,
                created_by_user_id=user_id,
            )
        )
        self.session.commit()

        return {
            "success": True,
            "message": f"SMS blast completed. Sent: {sent}, Failed: {failed}",
            "sent_count": sent,
            "failed_count": failed,
            "total_recipients": len(recipients),
        }

    def get_blast_logs(self, limit: int = 100) -> List[SmsBlastLog]:
        return self.session.exec(select(SmsBlastLog).order_by(SmsBlastLog.timestamp.desc()).limit(limit)).all()
