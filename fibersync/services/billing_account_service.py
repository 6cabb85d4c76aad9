# fibersync/services/billing_account_service.py
"""
Billing accounts and the technical details of each subscriber line.
"""
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..core.constants import BILLING_STATUS_NAMES
from ..models.billing_account import BillingAccount, BillingStatusType, TechnicalDetail
from ..models.customer import Customer
from ..models.plan import Plan

logger = logging.getLogger(__name__)

ACCOUNT_NUMBER_MIN_DIGITS = 4


class BillingAccountService:
    def __init__(self, session: Session):
        self.session = session

    # --- Lookups ---

    def get_by_account_no(self, account_no: str) -> Optional[BillingAccount]:
        return self.session.exec(
            select(BillingAccount).where(BillingAccount.account_no == account_no)
        ).first()

    def require_account(self, account_no: str) -> BillingAccount:
        account = self.get_by_account_no(account_no)
        if not account:
            raise FileNotFoundError(f"Billing account {account_no} not found.")
        return account

    def get_technical_detail(self, account_no: str) -> Optional[TechnicalDetail]:
        return self.session.exec(
            select(TechnicalDetail).where(TechnicalDetail.account_no == account_no)
        ).first()

    def get_pppoe_username(self, account: BillingAccount) -> Optional[str]:
        """PPPoE username from technical details, falling back to the account row."""
        technical = self.get_technical_detail(account.account_no)
        username = (technical.username if technical else None) or account.pppoe_username
        return username.strip() if username and username.strip() else None

    def get_plan(self, account: BillingAccount) -> Optional[Plan]:
        if account.plan_id is None:
            return None
        return self.session.get(Plan, account.plan_id)

    def get_statuses(self) -> List[BillingStatusType]:
        return self.session.exec(select(BillingStatusType).order_by(BillingStatusType.id)).all()

    def seed_statuses(self) -> None:
        for status_id, name in BILLING_STATUS_NAMES.items():
            if self.session.get(BillingStatusType, int(status_id)) is None:
                self.session.add(BillingStatusType(id=int(status_id), status_name=name))
        self.session.commit()

    # --- Listing ---

    def _serialize(self, account: BillingAccount, customer: Optional[Customer], status_name: Optional[str],
                   plan: Optional[Plan]) -> Dict[str, Any]:
        data = account.model_dump()
        data["customer_name"] = customer.full_name if customer else None
        data["contact_number"] = customer.contact_number_primary if customer else None
        data["email_address"] = customer.email_address if customer else None
        data["address"] = customer.address if customer else None
        data["barangay"] = customer.barangay if customer else None
        data["billing_status"] = status_name
        data["plan_name"] = plan.plan_name if plan else None
        return data

    def list_accounts(self, billing_status_id: Optional[int] = None,
                      search: Optional[str] = None) -> List[Dict[str, Any]]:
        statement = (
            select(BillingAccount, Customer, BillingStatusType.status_name, Plan)
            .join(Customer, BillingAccount.customer_id == Customer.id, isouter=True)
            .join(BillingStatusType, BillingAccount.billing_status_id == BillingStatusType.id, isouter=True)
            .join(Plan, BillingAccount.plan_id == Plan.id, isouter=True)
        )
        if billing_status_id is not None:
            statement = statement.where(BillingAccount.billing_status_id == billing_status_id)
        if search:
            like = f"%{search}%"
            statement = statement.where(
                BillingAccount.account_no.like(like)
                | Customer.first_name.like(like)
                | Customer.last_name.like(like)
            )
        rows = self.session.exec(statement.order_by(BillingAccount.account_no)).all()
        return [self._serialize(*row) for row in rows]

    def get_account_details(self, account_no: str) -> Dict[str, Any]:
        account = self.require_account(account_no)
        customer = self.session.get(Customer, account.customer_id)
        status = self.session.get(BillingStatusType, account.billing_status_id)
        data = self._serialize(account, customer, status.status_name if status else None, self.get_plan(account))
        technical = self.get_technical_detail(account_no)
        data["technical_details"] = technical.model_dump() if technical else None
        return data

    # --- Updates ---

    def update_account(self, account_no: str, data: Dict[str, Any], user_id=None) -> BillingAccount:
        account = self.require_account(account_no)
        if "billing_status_id" in data and data["billing_status_id"] is not None:
            if self.session.get(BillingStatusType, data["billing_status_id"]) is None:
                raise ValueError(f"Unknown billing status {data['billing_status_id']}.")
        if data.get("plan_id") is not None and self.session.get(Plan, data["plan_id"]) is None:
            raise ValueError(f"Unknown plan {data['plan_id']}.")
        if "account_balance" in data:
            account.balance_update_date = datetime.utcnow()
        for key, value in data.items():
            setattr(account, key, value)
        account.updated_at = datetime.utcnow()
        account.updated_by_user_id = user_id
        self.session.add(account)
        self.session.commit()
        self.session.refresh(account)
        return account

    def update_technical_detail(self, account_no: str, data: Dict[str, Any], user_id=None) -> TechnicalDetail:
        account = self.require_account(account_no)
        technical = self.get_technical_detail(account_no)
        if technical is None:
            technical = TechnicalDetail(account_id=account.id, account_no=account_no, created_by_user_id=user_id)
        for key, value in data.items():
            setattr(technical, key, value)
        technical.updated_at = datetime.utcnow()
        technical.updated_by_user_id = user_id
        self.session.add(technical)
        self.session.commit()
        self.session.refresh(technical)
        return technical

    # --- Account numbers ---

    def generate_account_number(self, prefix: Optional[str] = None) -> str:
        """
        Next account number.

        With a prefix, increments the highest `<prefix><digits>` number and
        keeps at least 4 digits (e.g. ATS0009 -> ATS0010). Without one,
        increments the highest all-digit number, padded to 4 (0001, 0002...).
        """
        prefix = (prefix or "").strip()
        existing = self.session.exec(select(BillingAccount.account_no)).all()
        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")

        highest = 0
        width = ACCOUNT_NUMBER_MIN_DIGITS
        for account_no in existing:
            match = pattern.match(account_no or "")
            if not match:
                continue
            digits = match.group(1)
            if int(digits) > highest:
                highest = int(digits)
                width = max(ACCOUNT_NUMBER_MIN_DIGITS, len(digits))

        return f"{prefix}{str(highest + 1).zfill(width)}"
