# fibersync/services/auto_disconnect_service.py
"""
Automatic disconnection and pullout of overdue accounts.

Auto disconnect (one run at a time, guarded by the `auto_disconnect`
worker lock) takes every active account with an open invoice due on or
before today - dc_actual_offset. Accounts with a PPPoE username and a
positive balance that were not disconnected today are processed:
  1. moves the PPPoE user to the Disconnected group through RADIUS,
  2. charges the disconnection fee on the overdue invoice and the balance,
  3. sets billing status Disconnected and writes a disconnection log,
  4. sends the disconnection SMS and email.

Auto pullout opens a Pullout service order for each account whose open
invoice fell due exactly `pullout_offset` days ago, unless one is already
open. A pullout_offset of 0 turns it off.
"""
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import Session, select

from ..core.config import Settings, get_settings
from ..core.constants import (
    CLOSED_SUPPORT_STATUSES,
    OPEN_INVOICE_STATUSES,
    SYSTEM_USER,
    BillingStatus,
    LifecycleAction,
)
from ..core.log_files import get_file_logger
from ..models.billing_account import BillingAccount
from ..models.invoice import Invoice
from ..models.radius import DisconnectionLog
from ..models.service_order import ServiceOrder
from .billing_account_service import BillingAccountService
from .radius_service import RadiusOperationsService
from .service_order_service import ServiceOrderService
from .settings_service import BillingConfig, SettingsService
from .worker_lock import acquire_lock, release_lock

logger = get_file_logger("fibersync.auto_disconnect", "auto_disconnect.log")

LOCK_NAME = "auto_disconnect"


def _start_of(day: date) -> datetime:
    return datetime.combine(day, datetime.min.time())


class AutoDisconnectService:
    def __init__(
        self,
        session: Session,
        radius: Optional[RadiusOperationsService] = None,
        service_orders: Optional[ServiceOrderService] = None,
        settings: Optional[Settings] = None,
        config: Optional[BillingConfig] = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.config = config or SettingsService(session).get_billing_config(self.settings)
        self.radius = radius or RadiusOperationsService(session, settings=self.settings)
        self.service_orders = service_orders or ServiceOrderService(session, radius=self.radius)
        self.billing = BillingAccountService(session)

    # --- Disconnect ---

    def overdue_accounts(self, today: date) -> List[Tuple[BillingAccount, Invoice]]:
        """Active accounts past the disconnection date, each with its oldest open invoice."""
        cutoff = _start_of(today - timedelta(days=self.config.dc_actual_offset)) + timedelta(days=1)
        rows = self.session.exec(
            select(BillingAccount, Invoice)
            .join(Invoice, Invoice.account_no == BillingAccount.account_no)
            .where(
                BillingAccount.billing_status_id == BillingStatus.ACTIVE,
                Invoice.status.in_(OPEN_INVOICE_STATUSES),
                Invoice.due_date.is_not(None),
                Invoice.due_date < cutoff,
            )
            .order_by(BillingAccount.account_no, Invoice.due_date, Invoice.id)
        ).all()

        oldest: Dict[str, Tuple[BillingAccount, Invoice]] = {}
        for account, invoice in rows:
            oldest.setdefault(account.account_no, (account, invoice))
        return list(oldest.values())

    def _disconnected_today(self, account_no: str, today: date) -> bool:
        return self.session.exec(
            select(DisconnectionLog.id).where(
                DisconnectionLog.account_no == account_no,
                DisconnectionLog.created_at >= _start_of(today),
                DisconnectionLog.created_at < _start_of(today) + timedelta(days=1),
            )
        ).first() is not None

    def disconnect_account(self, account: BillingAccount, invoice: Invoice, today: date) -> str:
        """Disconnects one overdue account. Returns disconnected, skipped or failed."""
        if account.account_balance <= 0:
            logger.info(f"[SKIP] {account.account_no}: balance {account.account_balance:,.2f}")
            return "skipped"
        if self._disconnected_today(account.account_no, today):
            logger.info(f"[SKIP] {account.account_no}: already disconnected today")
            return "skipped"
        username = self.billing.get_pppoe_username(account)
        if not username:
            logger.warning(f"[SKIP] {account.account_no}: no PPPoE username")
            return "skipped"

        days_overdue = (today - invoice.due_date.date()).days
        result = self.radius.disconnect_user(username, account.account_no, "Auto DC", SYSTEM_USER)
        if result["status"] != "success":
            logger.error(f"[FAILED] {account.account_no}: {result['message']}")
            return "failed"

        self.session.refresh(account)
        fee = self.config.disconnection_fee
        if fee > 0:
            invoice.service_charge = round(invoice.service_charge + fee, 2)
            invoice.total_amount = round(invoice.total_amount + fee, 2)
            invoice.invoice_balance = round(invoice.total_amount - invoice.received_payment, 2)
            invoice.updated_at = datetime.utcnow()
            self.session.add(invoice)
            account.account_balance = round(account.account_balance + fee, 2)

        account.billing_status_id = BillingStatus.DISCONNECTED
        account.updated_at = datetime.utcnow()
        self.session.add(account)
        self.session.add(DisconnectionLog(
            account_id=account.id,
            account_no=account.account_no,
            username=username,
            remarks=f"System Auto DC (Overdue {days_overdue} days)",
        ))
        self.session.commit()
        logger.info(f"[DISCONNECTED] {account.account_no} overdue {days_overdue} day(s), fee {fee:,.2f}, "
                    f"balance {account.account_balance:,.2f}")

        self.service_orders.notify(account, LifecycleAction.DISCONNECTION, self._plan_name(account))
        return "disconnected"

    def _plan_name(self, account: BillingAccount) -> str:
        plan = self.billing.get_plan(account)
        return plan.plan_name if plan else ""

    def process_auto_disconnect(self, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        stats = {"skipped_run": False, "found": 0, "disconnected": 0, "skipped": 0, "failed": 0}
        if not acquire_lock(self.session, LOCK_NAME, self.settings.billing_lock_timeout):
            stats["skipped_run"] = True
            return stats

        try:
            candidates = self.overdue_accounts(today)
            stats["found"] = len(candidates)
            logger.info(f"Auto disconnect on {today}: {len(candidates)} overdue account(s)")
            for account, invoice in candidates:
                try:
                    outcome = self.disconnect_account(account, invoice, today)
                except Exception as e:
                    self.session.rollback()
                    logger.error(f"[EXCEPTION] {account.account_no}: {e}", exc_info=True)
                    outcome = "failed"
                stats[outcome] += 1
        finally:
            release_lock(self.session, LOCK_NAME)

        logger.info(f"Auto disconnect finished: {stats}")
        return stats

    # --- Pullout ---

    def _has_open_pullout(self, account_no: str) -> bool:
        return self.session.exec(
            select(ServiceOrder.id).where(
                ServiceOrder.account_no == account_no,
                ServiceOrder.concern == "Pullout",
                ServiceOrder.support_status.not_in(CLOSED_SUPPORT_STATUSES),
            )
        ).first() is not None

    def process_auto_pullout(self, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        stats = {"found": 0, "created": 0, "skipped": 0, "failed": 0}
        offset = self.config.pullout_offset
        if offset <= 0:
            logger.info("Auto pullout disabled (pullout_offset is 0)")
            return stats

        due_day = today - timedelta(days=offset)
        rows = self.session.exec(
            select(BillingAccount, Invoice)
            .join(Invoice, Invoice.account_no == BillingAccount.account_no)
            .where(
                BillingAccount.billing_status_id != BillingStatus.PULLOUT,
                BillingAccount.account_balance > 0,
                Invoice.status.in_(OPEN_INVOICE_STATUSES),
                Invoice.due_date >= _start_of(due_day),
                Invoice.due_date < _start_of(due_day) + timedelta(days=1),
            )
            .order_by(BillingAccount.account_no)
        ).all()
        accounts = {account.account_no: account for account, _ in rows}
        stats["found"] = len(accounts)
        logger.info(f"Auto pullout on {today}: {len(accounts)} account(s) with invoices due {due_day}")

        for account_no in accounts:
            if self._has_open_pullout(account_no):
                stats["skipped"] += 1
                continue
            try:
                order = self.service_orders.create_service_order({
                    "account_no": account_no,
                    "concern": "Pullout",
                    "concern_remarks": f"System Auto Generated (Overdue {offset} Days)",
                    "support_status": "In Progress",
                    "priority_level": "High",
                    "requested_by": SYSTEM_USER,
                })
            except Exception as e:
                self.session.rollback()
                stats["failed"] += 1
                logger.error(f"[EXCEPTION] pullout order for {account_no}: {e}", exc_info=True)
                continue
            stats["created"] += 1
            logger.info(f"[PULLOUT] service order {order.ticket_id} opened for {account_no}")

        logger.info(f"Auto pullout finished: {stats}")
        return stats
