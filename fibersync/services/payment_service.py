# fibersync/services/payment_service.py
"""
Customer payment portal: Xendit invoice creation, webhook reconciliation
and the polling reads used by the portal.

Status flow of a pending payment:
    PENDING --webhook paid--> QUEUED --worker--> PROCESSING --> PAID
    PENDING --webhook / 24h--> EXPIRED,  PENDING --webhook--> FAILED
A row that reached PAID is never changed by a webhook.
"""
import hmac
import json
import logging
import re
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from ..core.config import Settings, get_settings
from ..core.constants import XENDIT_STATUS_MAP, PaymentStatus
from ..models.billing_account import BillingAccount
from ..models.customer import Customer
from ..models.payment import PendingPayment
from ..models.plan import Plan
from .xendit_client import XenditClient

logger = logging.getLogger(__name__)

MIN_PAYMENT_AMOUNT = 1.0


def generate_reference_no(account_no: str) -> str:
    """<account_no>-<20 random hex chars>."""
    return f"{account_no}-{secrets.token_hex(10)}"


def format_mobile_number(raw: Optional[str]) -> Optional[str]:
    """Philippine mobile number in E.164 form (+639XXXXXXXXX), or None when empty."""
    digits = re.sub(r"[^0-9]", "", raw or "")
    if not digits:
        return None
    if len(digits) == 10:
        digits = "63" + digits
    elif len(digits) == 11 and digits.startswith("0"):
        digits = "63" + digits[1:]
    return "+" + digits


def split_payer_name(full_name: str):
    """(given_names, surname): the surname is the last word, given names default to it."""
    words = (full_name or "").split()
    if not words:
        return "Customer", "Customer"
    surname = words[-1]
    given_names = " ".join(words[:-1]) or surname
    return given_names, surname


class PaymentService:
    """
    Service layer for online payments.
    """

    def __init__(self, session: Session, gateway: Optional[XenditClient] = None,
                 settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()
        self._gateway = gateway

    @property
    def gateway(self) -> XenditClient:
        if self._gateway is None:
            self._gateway = XenditClient(self.settings)
        return self._gateway

    # --- Invoice creation ---

    def build_invoice_payload(self, reference_no: str, amount: float, account: BillingAccount,
                              customer: Optional[Customer], plan_name: str) -> Dict[str, Any]:
        full_name = customer.full_name if customer else ""
        given_names, surname = split_payer_name(full_name)
        email = (customer.email_address if customer else None) or self.settings.payer_fallback_email
        portal = f"{self.settings.app_url.rstrip('/')}/portal/"

        customer_block = {"given_names": given_names, "surname": surname, "email": email}
        mobile = format_mobile_number(customer.contact_number_primary if customer else None)
        if mobile:
            customer_block["mobile_number"] = mobile

        return {
            "external_id": reference_no,
            "amount": amount,
            "payer_email": email,
            "description": f"Bill Payment - Account {account.account_no}",
            "invoice_duration": self.settings.invoice_duration_seconds,
            "currency": "PHP",
            "customer": customer_block,
            "items": [
                {
                    "name": f"Account {account.account_no} - {plan_name}",
                    "quantity": 1,
                    "price": amount,
                    "category": "Internet Service",
                }
            ],
            "success_redirect_url": f"{portal}?payment=success&ref={reference_no}",
            "failure_redirect_url": f"{portal}?payment=failed&ref={reference_no}",
        }

    def create_payment(self, account_no: Optional[str], amount: Optional[float]) -> Dict[str, Any]:
        """
        Creates a Xendit invoice and records it as a PENDING payment.

        Raises:
            ValueError: missing account number or amount below ₱1.00.
            FileNotFoundError: unknown account.
            PaymentGatewayError: Xendit failed.
        """
        account_no = (account_no or "").strip()
        if not account_no:
            raise ValueError("Account number is required")
        if amount is None or amount < MIN_PAYMENT_AMOUNT:
            raise ValueError("Amount must be at least ₱1.00")
        amount = round(float(amount), 2)

        account = self.session.exec(
            select(BillingAccount).where(BillingAccount.account_no == account_no)
        ).first()
        if not account:
            raise FileNotFoundError("Account not found")
        customer = self.session.get(Customer, account.customer_id)
        plan = self.session.get(Plan, account.plan_id) if account.plan_id else None
        plan_name = plan.plan_name if plan else (customer.desired_plan if customer else None) or "Internet Plan"

        reference_no = generate_reference_no(account_no)
        payload = self.build_invoice_payload(reference_no, amount, account, customer, plan_name)
        invoice = self.gateway.create_invoice(payload)

        payment = PendingPayment(
            reference_no=reference_no,
            account_no=account_no,
            amount=amount,
            status=PaymentStatus.PENDING.value,
            provider="XENDIT",
            plan=plan_name,
            payment_id=invoice["id"],
            payment_url=invoice["invoice_url"],
            json_payload=json.dumps(payload),
        )
        self.session.add(payment)
        self.session.commit()
        logger.info(f"Xendit invoice {invoice['id']} created for {account_no} ({reference_no}, ₱{amount:.2f})")

        return {
            "status": "success",
            "reference_no": reference_no,
            "payment_url": invoice["invoice_url"],
            "payment_id": invoice["id"],
            "amount": amount,
            "account_balance": account.account_balance,
        }

    # --- Webhook ---

    def verify_callback_token(self, token: Optional[str]) -> None:
        """Raises PermissionError unless `token` matches the configured callback token."""
        expected = self.settings.xendit_callback_token
        if not expected or not token or not hmac.compare_digest(token, expected):
            raise PermissionError("Forbidden")

    def handle_webhook(self, payload: Dict[str, Any]) -> Optional[PendingPayment]:
        """
        Applies a Xendit callback to the matching pending payment. Unknown
        statuses, unknown references and PAID rows are left untouched.
        Returns the updated row, if any.
        """
        reference_no = payload.get("external_id") or payload.get("requestReferenceNumber")
        if not reference_no:
            logger.warning("Xendit webhook without external_id ignored")
            return None

        raw_status = str(payload.get("status", "")).upper()
        new_status = XENDIT_STATUS_MAP.get(raw_status)
        if new_status is None:
            logger.info(f"Webhook for {reference_no} with status '{raw_status}' needs no update")
            return None

        payment = self.session.exec(
            select(PendingPayment).where(
                PendingPayment.reference_no == reference_no,
                PendingPayment.status != PaymentStatus.PAID.value,
            )
        ).first()
        if not payment:
            logger.info(f"Webhook for {reference_no}: no updatable payment (unknown or already PAID)")
            return None

        payment.status = new_status.value
        payment.callback_payload = json.dumps(payload)
        channel = payload.get("payment_channel") or payload.get("payment_method")
        if channel:
            payment.payment_method_id = str(channel)
        payment.updated_at = datetime.utcnow()
        self.session.add(payment)
        self.session.commit()
        logger.info(f"Webhook: {reference_no} {raw_status} -> {new_status.value}")
        return payment

    def webhook_info(self) -> Dict[str, Any]:
        return {
            "webhook_url": f"{self.settings.app_url.rstrip('/')}/api/xendit-webhook",
            "token_configured": bool(self.settings.xendit_callback_token),
            "header": "X-Callback-Token",
            "status_mapping": {k: v.value for k, v in XENDIT_STATUS_MAP.items()},
        }

    # --- Polling reads ---

    def expire_stale_payments(self) -> int:
        """Marks PENDING payments older than the TTL (24h) as EXPIRED."""
        cutoff = datetime.utcnow() - timedelta(hours=self.settings.pending_payment_ttl_hours)
        result = self.session.exec(
            update(PendingPayment)
            .where(PendingPayment.status == PaymentStatus.PENDING.value, PendingPayment.payment_date < cutoff)
            .values(status=PaymentStatus.EXPIRED.value, updated_at=datetime.utcnow())
        )
        self.session.commit()
        if result.rowcount:
            logger.info(f"Expired {result.rowcount} stale pending payment(s)")
        return result.rowcount or 0

    def check_pending_payment(self, account_no: str) -> Optional[Dict[str, Any]]:
        """Newest PENDING payment of the account created within the last 24h, if any."""
        self.expire_stale_payments()
        cutoff = datetime.utcnow() - timedelta(hours=self.settings.pending_payment_ttl_hours)
        payment = self.session.exec(
            select(PendingPayment)
            .where(
                PendingPayment.account_no == account_no,
                PendingPayment.status == PaymentStatus.PENDING.value,
                PendingPayment.payment_date >= cutoff,
            )
            .order_by(PendingPayment.payment_date.desc())
        ).first()
        if not payment:
            return None
        return {
            "reference_no": payment.reference_no,
            "amount": payment.amount,
            "status": payment.status,
            "payment_date": payment.payment_date,
            "payment_url": payment.payment_url,
        }

    def check_payment_status(self, reference_no: str) -> Dict[str, Any]:
        payment = self.session.exec(
            select(PendingPayment).where(PendingPayment.reference_no == reference_no)
        ).first()
        if not payment:
            raise FileNotFoundError("Payment not found")
        return {
            "reference_no": payment.reference_no,
            "amount": payment.amount,
            "status": payment.status,
            "payment_date": payment.payment_date,
        }

    def get_account_balance(self, account_no: str) -> Dict[str, Any]:
        account = self.session.exec(
            select(BillingAccount).where(BillingAccount.account_no == account_no)
        ).first()
        if not account:
            raise FileNotFoundError("Account not found")
        return {"account_no": account.account_no, "account_balance": account.account_balance}
