# fibersync/services/customer_service.py
"""
Customer service layer using SQLModel ORM.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlmodel import Session, select

from ..models.billing_account import BillingAccount
from ..models.customer import Customer

logger = logging.getLogger(__name__)


class CustomerService:
    """
    Service layer for Customer operations.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_all_customers(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        All customers with their account numbers. `search` matches name,
        mobile number or account number.
        """
        statement = select(Customer)
        if search:
            like = f"%{search}%"
            account_match = select(BillingAccount.customer_id).where(BillingAccount.account_no.like(like))
            statement = statement.where(
                or_(
                    Customer.first_name.like(like),
                    Customer.last_name.like(like),
                    Customer.contact_number_primary.like(like),
                    Customer.id.in_(account_match),
                )
            )
        customers = self.session.exec(statement.order_by(Customer.last_name, Customer.first_name)).all()

        accounts: Dict[int, List[str]] = {}
        for customer_id, account_no in self.session.exec(
            select(BillingAccount.customer_id, BillingAccount.account_no)
        ).all():
            accounts.setdefault(customer_id, []).append(account_no)

        result = []
        for customer in customers:
            data = customer.model_dump()
            data["full_name"] = customer.full_name
            data["account_numbers"] = accounts.get(customer.id, [])
            result.append(data)
        return result

    def get_customer(self, customer_id: int) -> Customer:
        customer = self.session.get(Customer, customer_id)
        if not customer:
            raise FileNotFoundError(f"Customer {customer_id} not found.")
        return customer

    def create_customer(self, customer_data: Dict[str, Any], user_id=None) -> Customer:
        data = {k: v for k, v in customer_data.items() if k != "id"}
        if not data.get("first_name") or not data.get("last_name"):
            raise ValueError("first_name and last_name are required.")
        customer = Customer(**data, created_by_user_id=user_id, updated_by_user_id=user_id)
        self.session.add(customer)
        self.session.commit()
        self.session.refresh(customer)
        return customer

    def update_customer(self, customer_id: int, customer_update: Dict[str, Any], user_id=None) -> Customer:
        if not customer_update:
            raise ValueError("No fields to update provided.")
        customer = self.get_customer(customer_id)
        for key, value in customer_update.items():
            setattr(customer, key, value)
        customer.updated_at = datetime.utcnow()
        customer.updated_by_user_id = user_id
        self.session.add(customer)
        self.session.commit()
        self.session.refresh(customer)
        return customer

    def delete_customer(self, customer_id: int) -> None:
        customer = self.get_customer(customer_id)
        has_accounts = self.session.exec(
            select(BillingAccount).where(BillingAccount.customer_id == customer_id)
        ).first()
        if has_accounts:
            raise ValueError("Customer still has billing accounts.")
        self.session.delete(customer)
        self.session.commit()
