# fibersync/services/billing_generation_service.py
"""
Daily invoice generation.

Invoices are generated `advance_generation_days` ahead of the billing
date. On a run for day D the billing date is T = D + advance days and the
accounts billed are the active, installed ones whose billing day is:

    T.day                                   always
    0 (end of month)                        when T is the last day of its month
    any day past the end of T's month       when T is the last day of its month

so a billing day of 29-31 falls on the last day of shorter months.

Each invoice charges the plan price plus installment schedules due by T.
Existing credit (a negative balance) pays the new invoice first.
"""
import calendar
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Set

from sqlmodel import Session, select

from ..core.config import Settings, get_settings
from ..core.constants import BillingStatus
from ..core.log_files import get_file_logger
from ..models.billing_account import BillingAccount
from ..models.invoice import Installment, InstallmentSchedule, Invoice
from ..models.plan import Plan
from .billing_notification_service import BillingNotificationService
from .settings_service import BillingConfig, SettingsService

logger = get_file_logger("fibersync.billing", "billing_generation.log")

END_OF_MONTH_BILLING = 0
PAID_EPSILON = 0.01


def is_last_day_of_month(day: date) -> bool:
    return day.day == calendar.monthrange(day.year, day.month)[1]


def target_billing_days(billing_date: date) -> Set[int]:
    """Billing days of the accounts whose cycle falls on `billing_date`."""
    days = {billing_date.day}
    if is_last_day_of_month(billing_date):
        days.add(END_OF_MONTH_BILLING)
        days.update(range(billing_date.day + 1, 32))
    return days


class BillingGenerationService:
    def __init__(
        self,
        session: Session,
        notifier: Optional[BillingNotificationService] = None,
        settings: Optional[Settings] = None,
        config: Optional[BillingConfig] = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.config = config or SettingsService(session).get_billing_config(self.settings)
        self._notifier = notifier

    @property
    def notifier(self) -> BillingNotificationService:
        if self._notifier is None:
            self._notifier = BillingNotificationService(self.session, settings=self.settings, config=self.config)
        return self._notifier

    def billing_date_for(self, generation_date: date) -> date:
        return generation_date + timedelta(days=self.config.advance_generation_days)

    def accounts_for_billing_date(self, billing_date: date) -> List[BillingAccount]:
        return self.session.exec(
            select(BillingAccount)
            .where(
                BillingAccount.billing_status_id == BillingStatus.ACTIVE,
                BillingAccount.date_installed.is_not(None),
                BillingAccount.billing_day.in_(sorted(target_billing_days(billing_date))),
            )
            .order_by(BillingAccount.account_no)
        ).all()

    def _already_invoiced(self, account_no: str, generation_date: date) -> bool:
        start = datetime.combine(generation_date, datetime.min.time())
        return self.session.exec(
            select(Invoice.id).where(
                Invoice.account_no == account_no,
                Invoice.invoice_date >= start,
                Invoice.invoice_date < start + timedelta(days=1),
            )
        ).first() is not None

    def _due_installments(self, account_no: str, billing_date: date) -> List[InstallmentSchedule]:
        return self.session.exec(
            select(InstallmentSchedule)
            .join(Installment, Installment.id == InstallmentSchedule.installment_id)
            .where(
                Installment.account_no == account_no,
                Installment.status == "active",
                InstallmentSchedule.status == "pending",
                InstallmentSchedule.invoice_id.is_(None),
                InstallmentSchedule.due_date <= billing_date,
            )
            .order_by(InstallmentSchedule.due_date)
        ).all()

    def create_invoice(self, account: BillingAccount, generation_date: date, user_id=None) -> Invoice:
        """Creates and commits the cycle invoice for `account`; raises ValueError without a priced plan."""
        plan = self.session.get(Plan, account.plan_id) if account.plan_id else None
        if plan is None:
            raise ValueError(f"Account {account.account_no} has no plan")
        if plan.price <= 0:
            raise ValueError(f"Plan '{plan.plan_name}' has no price")

        billing_date = self.billing_date_for(generation_date)
        schedules = self._due_installments(account.account_no, billing_date)
        staggered = round(sum(s.amount for s in schedules), 2)
        total = round(plan.price + staggered, 2)

        # Credit left on the account pays the new invoice first
        credit = max(-account.account_balance, 0.0)
        received = round(min(credit, total), 2)
        if total - received <= PAID_EPSILON:
            status = "Paid"
        else:
            status = "Partial" if received > 0 else "Unpaid"

        now = datetime.utcnow()
        invoice = Invoice(
            account_no=account.account_no,
            invoice_date=datetime.combine(generation_date, now.time()),
            others_and_basic_charges=plan.price,
            staggered=staggered,
            total_amount=total,
            received_payment=received,
            invoice_balance=round(total - received, 2),
            due_date=datetime.combine(billing_date + timedelta(days=self.config.due_days_add), datetime.min.time()),
            status=status,
            created_by_user_id=user_id,
            updated_by_user_id=user_id,
        )
        self.session.add(invoice)
        self.session.flush()

        for schedule in schedules:
            schedule.invoice_id = invoice.id
            self.session.add(schedule)

        account.account_balance = round(account.account_balance + total, 2)
        account.balance_update_date = now
        account.updated_at = now
        self.session.add(account)
        self.session.commit()
        self.session.refresh(invoice)
        logger.info(
            f"Invoice {invoice.id} for {account.account_no}: PHP {total:,.2f} "
            f"(plan {plan.price:,.2f}, installments {staggered:,.2f}, credit used {received:,.2f}), "
            f"due {invoice.due_date:%Y-%m-%d}, balance now {account.account_balance:,.2f}"
        )
        return invoice

    def generate_for_date(self, generation_date: Optional[date] = None, user_id=None,
                          notify: bool = True) -> Dict[str, Any]:
        """One daily run. Errors on one account are recorded and do not stop the others."""
        generation_date = generation_date or date.today()
        billing_date = self.billing_date_for(generation_date)
        accounts = self.accounts_for_billing_date(billing_date)
        stats: Dict[str, Any] = {
            "generation_date": generation_date.isoformat(),
            "billing_date": billing_date.isoformat(),
            "found": len(accounts),
            "generated": 0,
            "skipped": 0,
            "failed": 0,
            "notified": 0,
            "errors": [],
        }
        logger.info(f"Generating invoices on {generation_date} for billing date {billing_date}: "
                    f"{len(accounts)} account(s)")

        for account in accounts:
            if self._already_invoiced(account.account_no, generation_date):
                stats["skipped"] += 1
                continue
            try:
                invoice = self.create_invoice(account, generation_date, user_id)
            except Exception as e:
                self.session.rollback()
                stats["failed"] += 1
                stats["errors"].append({"account_no": account.account_no, "error": str(e)})
                logger.error(f"Invoice for {account.account_no} failed: {e}")
                continue
            stats["generated"] += 1

            if notify:
                outcome = self.notifier.notify_billing_generated(account, invoice)
                if not outcome["errors"]:
                    stats["notified"] += 1
                else:
                    logger.warning(f"Statement notice for {account.account_no}: {'; '.join(outcome['errors'])}")

        logger.info(f"Invoice generation finished: found={stats['found']} generated={stats['generated']} "
                    f"skipped={stats['skipped']} failed={stats['failed']}")
        return stats
