# fibersync/services/job_order_service.py
"""
Job orders (installation requests) and their approval into a live
subscriber: customer, billing account, technical details and PPPoE
credentials, created in a single transaction.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..core.constants import BillingStatus
from ..models.billing_account import BillingAccount, TechnicalDetail
from ..models.customer import Customer
from ..models.job_order import JobOrder
from ..models.plan import Plan
from .billing_account_service import BillingAccountService
from .pppoe_service import PppoeService
from .settings_service import SettingsService

logger = logging.getLogger(__name__)

JOB_ORDER_DONE = "Done"
PROTECTED_FIELDS = {"id", "account_id", "account_no", "billing_status", "created_at", "created_by_user_id"}
TECHNICAL_FIELDS = ("connection_type", "router_model", "ip_address", "lcp", "nap", "port",
                    "vlan", "lcpnap", "usage_type", "username_status")


class JobOrderService:
    def __init__(self, session: Session):
        self.session = session

    def list_job_orders(self, billing_status: Optional[str] = None) -> List[JobOrder]:
        statement = select(JobOrder)
        if billing_status:
            statement = statement.where(JobOrder.billing_status == billing_status)
        return self.session.exec(statement.order_by(JobOrder.created_at.desc())).all()

    def get_job_order(self, job_order_id: int) -> JobOrder:
        job_order = self.session.get(JobOrder, job_order_id)
        if not job_order:
            raise FileNotFoundError("Job order not found")
        return job_order

    def create_job_order(self, data: Dict[str, Any], user_id=None) -> JobOrder:
        if not data.get("first_name") or not data.get("last_name"):
            raise ValueError("first_name and last_name are required.")
        values = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
        job_order = JobOrder(**values, created_by_user_id=user_id, updated_by_user_id=user_id)
        self.session.add(job_order)
        self.session.commit()
        self.session.refresh(job_order)
        logger.info(f"Job order {job_order.id} created for {job_order.first_name} {job_order.last_name}")
        return job_order

    def update_job_order(self, job_order_id: int, data: Dict[str, Any], user_id=None) -> JobOrder:
        job_order = self.get_job_order(job_order_id)
        for key, value in data.items():
            if key not in PROTECTED_FIELDS and hasattr(job_order, key):
                setattr(job_order, key, value)
        job_order.updated_at = datetime.utcnow()
        job_order.updated_by_user_id = user_id
        self.session.add(job_order)
        self.session.commit()
        self.session.refresh(job_order)
        return job_order

    def delete_job_order(self, job_order_id: int) -> None:
        job_order = self.get_job_order(job_order_id)
        if job_order.billing_status == JOB_ORDER_DONE:
            raise ValueError("An approved job order cannot be deleted.")
        self.session.delete(job_order)
        self.session.commit()

    def approve_job_order(self, job_order_id: int, user_id=None) -> Dict[str, Any]:
        """
        Onboards the applicant. Everything is committed together or not at all.

        Raises:
            FileNotFoundError: unknown job order.
            ValueError: job order already approved.
        """
        job_order = self.get_job_order(job_order_id)
        if job_order.billing_status == JOB_ORDER_DONE:
            raise ValueError("Job order has already been approved.")

        billing = BillingAccountService(self.session)
        try:
            customer = Customer(
                first_name=job_order.first_name,
                middle_initial=job_order.middle_initial,
                last_name=job_order.last_name,
                email_address=job_order.email_address,
                contact_number_primary=job_order.mobile_number,
                contact_number_secondary=job_order.secondary_mobile_number,
                address=job_order.installation_address,
                location=job_order.location,
                barangay=job_order.barangay,
                city=job_order.city,
                region=job_order.region,
                address_coordinates=job_order.address_coordinates,
                referred_by=job_order.referred_by,
                desired_plan=job_order.desired_plan,
                created_by_user_id=user_id,
                updated_by_user_id=user_id,
            )
            self.session.add(customer)
            self.session.flush()

            prefix = SettingsService(self.session).get_setting("account_number_prefix", "")
            account_no = billing.generate_account_number(prefix)
            plan = None
            if job_order.desired_plan:
                plan = self.session.exec(select(Plan).where(Plan.plan_name == job_order.desired_plan)).first()

            credentials = PppoeService(self.session).generate_credentials(
                {
                    "first_name": job_order.first_name,
                    "middle_initial": job_order.middle_initial,
                    "last_name": job_order.last_name,
                    "mobile_number": job_order.mobile_number,
                    "tech_input_username": job_order.tech_input_username,
                },
                exclude_job_order_id=job_order.id,
            )

            account = BillingAccount(
                customer_id=customer.id,
                account_no=account_no,
                plan_id=plan.id if plan else None,
                date_installed=job_order.date_installed or datetime.utcnow(),
                billing_day=job_order.billing_day,
                billing_status_id=BillingStatus.ACTIVE,
                account_balance=job_order.installation_fee or 0.0,
                balance_update_date=datetime.utcnow(),
                pppoe_username=credentials["username"],
                created_by_user_id=user_id,
                updated_by_user_id=user_id,
            )
            self.session.add(account)
            self.session.flush()

            technical = TechnicalDetail(
                account_id=account.id,
                account_no=account_no,
                username=credentials["username"],
                router_modem_sn=job_order.modem_router_sn,
                created_by_user_id=user_id,
                updated_by_user_id=user_id,
                **{field: getattr(job_order, field) for field in TECHNICAL_FIELDS},
            )
            self.session.add(technical)

            job_order.billing_status = JOB_ORDER_DONE
            job_order.account_id = account.id
            job_order.account_no = account_no
            job_order.pppoe_username = credentials["username"]
            job_order.pppoe_password = credentials["password"]
            job_order.updated_at = datetime.utcnow()
            job_order.updated_by_user_id = user_id
            self.session.add(job_order)

            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.exception(f"Approval of job order {job_order_id} failed, rolled back")
            raise

        logger.info(f"Job order {job_order_id} approved as account {account_no} ({credentials['username']})")
        return {
            "customer_id": customer.id,
            "account_id": account.id,
            "account_no": account_no,
            "pppoe_username": credentials["username"],
            "pppoe_password": credentials["password"],
        }
