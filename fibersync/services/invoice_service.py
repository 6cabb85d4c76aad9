# fibersync/services/invoice_service.py
"""
Invoices, payment transactions and installment plans.
"""
import calendar
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..models.invoice import Installment, InstallmentSchedule, Invoice, Transaction
from .base_service import BaseCRUDService

logger = logging.getLogger(__name__)


def add_months(start: date, months: int) -> date:
    """Same day `months` later, clamped to the last day of short months."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class InvoiceService(BaseCRUDService[Invoice]):
    def __init__(self, session: Session):
        super().__init__(session, Invoice)

    def list_invoices(self, account_no: Optional[str] = None, status: Optional[str] = None) -> List[Invoice]:
        statement = select(Invoice)
        if account_no:
            statement = statement.where(Invoice.account_no == account_no)
        if status:
            statement = statement.where(Invoice.status == status)
        return self.session.exec(statement.order_by(Invoice.invoice_date.desc())).all()

    def get_unpaid_invoices(self, account_no: str) -> List[Invoice]:
        """Unpaid and partially paid invoices, oldest first."""
        return self.session.exec(
            select(Invoice)
            .where(Invoice.account_no == account_no, Invoice.status.in_(["Unpaid", "Partial"]))
            .order_by(Invoice.invoice_date.asc(), Invoice.id.asc())
        ).all()

    def create_invoice(self, data: Dict[str, Any], user_id=None) -> Invoice:
        if not data.get("account_no"):
            raise ValueError("account_no is required.")
        if data.get("invoice_balance") is None:
            data["invoice_balance"] = data.get("total_amount", 0.0)
        return self.create({**data, "created_by_user_id": user_id, "updated_by_user_id": user_id})

    def update_invoice(self, invoice_id: int, data: Dict[str, Any], user_id=None) -> Invoice:
        return self.update(invoice_id, {**data, "updated_by_user_id": user_id})


class TransactionService(BaseCRUDService[Transaction]):
    def __init__(self, session: Session):
        super().__init__(session, Transaction)

    def list_transactions(self, account_no: Optional[str] = None, status: Optional[str] = None) -> List[Transaction]:
        statement = select(Transaction)
        if account_no:
            statement = statement.where(Transaction.account_no == account_no)
        if status:
            statement = statement.where(Transaction.status == status)
        return self.session.exec(statement.order_by(Transaction.payment_date.desc())).all()


class InstallmentService(BaseCRUDService[Installment]):
    def __init__(self, session: Session):
        super().__init__(session, Installment)

    def create_installment(self, data: Dict[str, Any], user_id=None) -> Installment:
        if data.get("months_to_pay", 0) < 1:
            raise ValueError("months_to_pay must be at least 1.")
        if data.get("monthly_payment", 0) <= 0:
            raise ValueError("monthly_payment must be greater than zero.")
        data.setdefault("total_balance", round(data["months_to_pay"] * data["monthly_payment"], 2))
        return self.create({**data, "created_by_user_id": user_id})

    def generate_schedules(self, installment_id: int, user_id=None) -> List[InstallmentSchedule]:
        """
        One pending schedule per month starting at the installment's start
        date. All rows are written in a single transaction.
        """
        installment = self.get_by_id(installment_id)
        existing = self.session.exec(
            select(InstallmentSchedule).where(InstallmentSchedule.installment_id == installment_id)
        ).first()
        if existing:
            raise ValueError("Schedules already exist for this installment")

        schedules = []
        try:
            for number in range(1, installment.months_to_pay + 1):
                schedule = InstallmentSchedule(
                    installment_id=installment.id,
                    installment_no=number,
                    due_date=add_months(installment.start_date, number - 1),
                    amount=installment.monthly_payment,
                    status="pending",
                    created_by_user_id=user_id,
                )
                self.session.add(schedule)
                schedules.append(schedule)
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.exception(f"Generating schedules for installment {installment_id} failed")
            raise

        for schedule in schedules:
            self.session.refresh(schedule)
        return schedules

    def get_schedules(self, installment_id: Optional[int] = None,
                      account_no: Optional[str] = None) -> List[InstallmentSchedule]:
        statement = select(InstallmentSchedule)
        if installment_id is not None:
            statement = statement.where(InstallmentSchedule.installment_id == installment_id)
        if account_no:
            statement = statement.join(Installment, InstallmentSchedule.installment_id == Installment.id).where(
                Installment.account_no == account_no
            )
        return self.session.exec(
            statement.order_by(InstallmentSchedule.installment_id, InstallmentSchedule.installment_no)
        ).all()

    def update_schedule(self, schedule_id: int, data: Dict[str, Any]) -> InstallmentSchedule:
        schedule = self.session.get(InstallmentSchedule, schedule_id)
        if not schedule:
            raise FileNotFoundError(f"Installment schedule {schedule_id} not found.")
        for key, value in data.items():
            setattr(schedule, key, value)
        self.session.add(schedule)
        self.session.commit()
        self.session.refresh(schedule)
        return schedule
