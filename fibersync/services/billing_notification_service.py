# fibersync/services/billing_notification_service.py
"""
Billing notices sent by SMS and queued email: the statement for a newly
generated invoice, the overdue notice and the disconnection (DC) notice.

Notices are picked by invoice due date:
    overdue notice : due_date == today - overdue_offset
    DC notice      : due_date == today - dc_notice_offset
The DC notice announces disconnection on due_date + dc_actual_offset.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..core.config import Settings, get_settings
from ..core.constants import OPEN_INVOICE_STATUSES
from ..models.billing_account import BillingAccount
from ..models.customer import Customer
from ..models.invoice import Invoice
from .email_service import EmailQueueService
from .settings_service import BillingConfig, SettingsService
from .sms_service import ItexmoSmsService, SmsTemplateService

logger = logging.getLogger(__name__)

# notice -> (SMS template type, email template code)
NOTICE_TEMPLATES = {
    "statement": ("statement", "STATEMENT"),
    "overdue": ("overdue", "OVERDUE"),
    "dc_notice": ("dc_notice", "DC_NOTICE"),
}


def _day_range(day: date):
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


class BillingNotificationService:
    def __init__(
        self,
        session: Session,
        sms: Optional[ItexmoSmsService] = None,
        email: Optional[EmailQueueService] = None,
        settings: Optional[Settings] = None,
        config: Optional[BillingConfig] = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.config = config or SettingsService(session).get_billing_config(self.settings)
        self.sms = sms or ItexmoSmsService(session, self.settings)
        self.email = email or EmailQueueService(session, settings=self.settings)

    # --- Single notices ---

    def _context(self, account: BillingAccount, customer: Customer, invoice: Invoice,
                 amount: float) -> Dict[str, Any]:
        due_date = invoice.due_date or invoice.invoice_date
        return {
            "customer_name": customer.full_name,
            "account_no": account.account_no,
            "amount_due": f"{amount:,.2f}",
            "balance": f"{account.account_balance:,.2f}",
            "plan": customer.desired_plan or "",
            "due_date": f"{due_date:%b %d, %Y}",
            "dc_date": f"{due_date + timedelta(days=self.config.dc_actual_offset):%b %d, %Y}",
            "payment_link": self.settings.payment_link,
        }

    def _send(self, notice: str, account: BillingAccount, invoice: Invoice, amount: float) -> Dict[str, Any]:
        """Sends one notice. Never raises; problems are listed under `errors`."""
        result: Dict[str, Any] = {"sms": False, "email": False, "errors": []}
        customer = self.session.get(Customer, account.customer_id)
        if customer is None:
            result["errors"].append("Customer not found")
            return result

        sms_type, email_code = NOTICE_TEMPLATES[notice]
        context = self._context(account, customer, invoice, amount)

        try:
            message = SmsTemplateService(self.session).build_message(sms_type, context)
            sent = self.sms.send(customer.contact_number_primary, message)
            result["sms"] = sent["success"]
            if not sent["success"]:
                result["errors"].append(f"SMS: {sent.get('error')}")
        except Exception as e:
            logger.warning(f"{notice} SMS to {account.account_no} raised: {e}")
            result["errors"].append(f"SMS: {e}")

        if customer.email_address:
            try:
                queued = self.email.queue_from_template(
                    email_code, {**context, "recipient_email": customer.email_address}
                )
                result["email"] = queued is not None
                if queued is None:
                    result["errors"].append(f"Email: template '{email_code}' not found")
            except Exception as e:
                self.session.rollback()
                logger.warning(f"{notice} email to {account.account_no} raised: {e}")
                result["errors"].append(f"Email: {e}")
        return result

    def notify_billing_generated(self, account: BillingAccount, invoice: Invoice) -> Dict[str, Any]:
        return self._send("statement", account, invoice, account.account_balance)

    def notify_overdue(self, invoice: Invoice) -> Dict[str, Any]:
        return self._notify_invoice("overdue", invoice)

    def notify_dc_notice(self, invoice: Invoice) -> Dict[str, Any]:
        return self._notify_invoice("dc_notice", invoice)

    def _notify_invoice(self, notice: str, invoice: Invoice) -> Dict[str, Any]:
        account = self.session.exec(
            select(BillingAccount).where(BillingAccount.account_no == invoice.account_no)
        ).first()
        if account is None:
            return {"sms": False, "email": False, "errors": ["Billing account not found"]}
        return self._send(notice, account, invoice, invoice.total_amount)

    # --- Daily runs ---

    def invoices_due_on(self, due_day: date) -> List[Invoice]:
        start, end = _day_range(due_day)
        return self.session.exec(
            select(Invoice)
            .where(Invoice.due_date >= start, Invoice.due_date < end, Invoice.status.in_(OPEN_INVOICE_STATUSES))
            .order_by(Invoice.id)
        ).all()

    def _run(self, notice: str, offset: int, today: Optional[date]) -> Dict[str, Any]:
        due_day = (today or date.today()) - timedelta(days=offset)
        invoices = self.invoices_due_on(due_day)
        stats = {"due_date": due_day.isoformat(), "found": len(invoices), "success": 0, "failed": 0}
        logger.info(f"Sending {notice} for {len(invoices)} invoice(s) due on {due_day}")

        for invoice in invoices:
            outcome = self._notify_invoice(notice, invoice)
            if outcome["errors"]:
                stats["failed"] += 1
                logger.warning(f"{notice} for invoice {invoice.id}: {'; '.join(outcome['errors'])}")
            else:
                stats["success"] += 1
        logger.info(f"{notice} run finished: {stats}")
        return stats

    def send_overdue_notices(self, today: Optional[date] = None) -> Dict[str, Any]:
        return self._run("overdue", self.config.overdue_offset, today)

    def send_dc_notices(self, today: Optional[date] = None) -> Dict[str, Any]:
        return self._run("dc_notice", self.config.dc_notice_offset, today)
