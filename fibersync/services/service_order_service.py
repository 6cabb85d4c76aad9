# fibersync/services/service_order_service.py
"""
Service orders (support tickets) and the network operations their
status transitions trigger.

A transition into a resolving status runs at most one lifecycle action:

    concern Reconnect  + support_status -> Resolved : reconnection
    concern Disconnect + support_status -> Resolved : disconnection
    concern Pullout    + support_status -> Resolved
      or repair_category Pullout + visit_status -> Done : pullout
    concern Migrate    + support_status -> Resolved
      or repair_category Migrate + visit_status -> Done : migration

The action calls RADIUS, updates billing_status_id, writes a reconnection
or disconnection log and then tries to notify the subscriber by SMS and
email. Failures are reduced to a LifecycleResult; side effects already
applied are not rolled back.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..core.constants import (
    SUPPORT_STATUS_RESOLVED,
    VISIT_STATUS_DONE,
    BillingStatus,
    LifecycleAction,
    LifecycleResult,
)
from ..models.billing_account import BillingAccount, TechnicalDetail
from ..models.customer import Customer
from ..models.plan import Plan
from ..models.radius import DisconnectionLog, ReconnectionLog
from ..models.service_order import ServiceOrder
from .billing_account_service import BillingAccountService
from .email_service import EmailQueueService
from .radius_service import RadiusOperationsService
from .settings_service import SettingsService
from .sms_service import ItexmoSmsService, SmsTemplateService

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "concern",
    "concern_remarks",
    "support_status",
    "priority_level",
    "requested_by",
    "assigned_email",
    "support_remarks",
    "service_charge",
    "visit_status",
    "visit_by_user",
    "visit_with",
    "visit_remarks",
    "repair_category",
    "new_router_modem_sn",
    "new_lcp",
    "new_nap",
    "new_port",
    "new_vlan",
    "new_lcpnap",
    "new_plan",
    "router_model",
    "client_signature_url",
    "image1_url",
    "image2_url",
    "image3_url",
)

# service order column -> technical_details column
LINE_CHANGE_FIELDS = {
    "new_router_modem_sn": "router_modem_sn",
    "new_lcp": "lcp",
    "new_nap": "nap",
    "new_port": "port",
    "new_vlan": "vlan",
    "new_lcpnap": "lcpnap",
}
LINE_CHANGE_TRIGGERS = ("new_lcp", "new_nap", "new_port", "new_vlan", "new_router_modem_sn")

CONCERN_ACTIONS = {
    "reconnect": LifecycleAction.RECONNECTION,
    "disconnect": LifecycleAction.DISCONNECTION,
    "pullout": LifecycleAction.PULLOUT,
    "migrate": LifecycleAction.MIGRATION,
}
REPAIR_ACTIONS = {
    "pullout": LifecycleAction.PULLOUT,
    "migrate": LifecycleAction.MIGRATION,
}

LIFECYCLE_STATUS = {
    LifecycleAction.RECONNECTION: BillingStatus.ACTIVE,
    LifecycleAction.DISCONNECTION: BillingStatus.DISCONNECTED,
    LifecycleAction.PULLOUT: BillingStatus.PULLOUT,
    LifecycleAction.MIGRATION: BillingStatus.ACTIVE,
}


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def became(previous: Optional[str], current: Optional[str], target: str) -> bool:
    """True when `current` equals `target` and `previous` did not (case-insensitive)."""
    return _norm(current) == target.lower() and _norm(previous) != target.lower()


def determine_lifecycle_action(
    concern: Optional[str],
    repair_category: Optional[str],
    previous_support_status: Optional[str],
    support_status: Optional[str],
    previous_visit_status: Optional[str],
    visit_status: Optional[str],
) -> Optional[LifecycleAction]:
    """The network action an update triggers, or None."""
    if became(previous_support_status, support_status, SUPPORT_STATUS_RESOLVED):
        action = CONCERN_ACTIONS.get(_norm(concern))
        if action:
            return action
    if became(previous_visit_status, visit_status, VISIT_STATUS_DONE):
        return REPAIR_ACTIONS.get(_norm(repair_category))
    return None


def generate_ticket_id(session: Session, now: Optional[datetime] = None) -> str:
    """Current year followed by a zero-padded 6-digit sequence, e.g. 2026000042."""
    year = str((now or datetime.utcnow()).year)
    last = session.exec(
        select(ServiceOrder.ticket_id)
        .where(ServiceOrder.ticket_id.like(f"{year}%"))
        .order_by(ServiceOrder.ticket_id.desc())
    ).first()
    sequence = int(last[4:]) + 1 if last and last[4:].isdigit() else 1
    return f"{year}{sequence:06d}"


class ServiceOrderService:
    def __init__(
        self,
        session: Session,
        radius: Optional[RadiusOperationsService] = None,
        sms: Optional[ItexmoSmsService] = None,
        email: Optional[EmailQueueService] = None,
    ):
        self.session = session
        self.billing = BillingAccountService(session)
        self._radius = radius
        self._sms = sms
        self._email = email

    @property
    def radius(self) -> RadiusOperationsService:
        if self._radius is None:
            self._radius = RadiusOperationsService(self.session)
        return self._radius

    @property
    def sms(self) -> ItexmoSmsService:
        if self._sms is None:
            self._sms = ItexmoSmsService(self.session)
        return self._sms

    @property
    def email(self) -> EmailQueueService:
        if self._email is None:
            self._email = EmailQueueService(self.session)
        return self._email

    # --- Reads ---

    def _serialize(self, order: ServiceOrder, account: Optional[BillingAccount],
                   customer: Optional[Customer], technical: Optional[TechnicalDetail]) -> Dict[str, Any]:
        data = order.model_dump()
        data.update({
            "account_id": account.id if account else None,
            "full_name": customer.full_name if customer else None,
            "contact_number": customer.contact_number_primary if customer else None,
            "email_address": customer.email_address if customer else None,
            "full_address": ", ".join(
                p for p in (customer.address, customer.barangay, customer.city, customer.region) if p
            ) if customer else None,
            "date_installed": account.date_installed if account else None,
            "plan": customer.desired_plan if customer else None,
            "username": technical.username if technical else None,
            "router_modem_sn": technical.router_modem_sn if technical else None,
            "lcp": technical.lcp if technical else None,
            "nap": technical.nap if technical else None,
            "port": technical.port if technical else None,
            "vlan": technical.vlan if technical else None,
            "lcpnap": technical.lcpnap if technical else None,
        })
        return data

    def _joined(self):
        return (
            select(ServiceOrder, BillingAccount, Customer, TechnicalDetail)
            .join(BillingAccount, BillingAccount.account_no == ServiceOrder.account_no, isouter=True)
            .join(Customer, Customer.id == BillingAccount.customer_id, isouter=True)
            .join(TechnicalDetail, TechnicalDetail.account_no == ServiceOrder.account_no, isouter=True)
        )

    def list_service_orders(self, assigned_email: Optional[str] = None, account_no: Optional[str] = None,
                            support_status: Optional[str] = None) -> List[Dict[str, Any]]:
        statement = self._joined()
        if assigned_email:
            statement = statement.where(ServiceOrder.assigned_email == assigned_email)
        if account_no:
            statement = statement.where(ServiceOrder.account_no == account_no)
        if support_status:
            statement = statement.where(ServiceOrder.support_status == support_status)
        statement = statement.order_by(ServiceOrder.created_at.desc(), ServiceOrder.id.desc())
        return [self._serialize(*row) for row in self.session.exec(statement).all()]

    def get_service_order(self, order_id: int) -> Dict[str, Any]:
        row = self.session.exec(self._joined().where(ServiceOrder.id == order_id)).first()
        if not row:
            raise FileNotFoundError("Service order not found")
        return self._serialize(*row)

    def _require(self, order_id: int) -> ServiceOrder:
        order = self.session.get(ServiceOrder, order_id)
        if not order:
            raise FileNotFoundError("Service order not found")
        return order

    # --- Writes ---

    def create_service_order(self, data: Dict[str, Any], user_id=None) -> ServiceOrder:
        if not data.get("account_no"):
            raise ValueError("account_no is required.")
        if not data.get("concern"):
            raise ValueError("concern is required.")

        values = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
        order = ServiceOrder(
            **values,
            account_no=data["account_no"],
            ticket_id=generate_ticket_id(self.session),
            created_by_user_id=user_id,
            updated_by_user_id=user_id,
        )
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        logger.info(f"Service order {order.ticket_id} created for {order.account_no} ({order.concern})")
        return order

    def delete_service_order(self, order_id: int) -> None:
        order = self._require(order_id)
        self.session.delete(order)
        self.session.commit()
        logger.info(f"Service order {order.ticket_id} deleted")

    def update_service_order(self, order_id: int, data: Dict[str, Any], user_id=None,
                             updated_by: str = "System") -> Dict[str, Any]:
        """
        Applies whitelisted fields, line changes and the one-time service
        charge, then runs the triggered lifecycle action (if any).

        Returns {"order": ServiceOrder, "network_operation": {action, result} | None}.
        """
        order = self._require(order_id)
        previous_support = order.support_status
        previous_visit = order.visit_status
        changes = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}

        for key, value in changes.items():
            setattr(order, key, value)
        order.updated_at = datetime.utcnow()
        order.updated_by_user_id = user_id

        account = self.billing.get_by_account_no(order.account_no)

        if any(changes.get(field) for field in LINE_CHANGE_TRIGGERS):
            self._apply_line_change(order, changes, user_id)

        resolving = (
            became(previous_support, order.support_status, SUPPORT_STATUS_RESOLVED)
            or became(previous_visit, order.visit_status, VISIT_STATUS_DONE)
        )
        if resolving and account and (order.service_charge or 0) > 0 and order.status != "used":
            account.account_balance = round(account.account_balance + order.service_charge, 2)
            account.balance_update_date = datetime.utcnow()
            self.session.add(account)
            order.status = "used"
            logger.info(f"Service charge ₱{order.service_charge:,.2f} added to {account.account_no}")

        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)

        action = determine_lifecycle_action(
            order.concern, order.repair_category,
            previous_support, order.support_status,
            previous_visit, order.visit_status,
        )
        network_operation = None
        if action:
            logger.info(f"Service order {order.ticket_id} triggers {action.value}")
            result = self.run_lifecycle_action(action, order, updated_by)
            network_operation = {"action": action.value, "result": result.value}

        return {"order": order, "network_operation": network_operation}

    def _apply_line_change(self, order: ServiceOrder, changes: Dict[str, Any], user_id) -> None:
        technical = self.billing.get_technical_detail(order.account_no)
        if technical is None:
            logger.warning(f"No technical details for {order.account_no}, line change kept on the order only")
            return
        for new_field, column in LINE_CHANGE_FIELDS.items():
            value = changes.get(new_field)
            if not value:
                continue
            # Snapshot only the replaced fields
            if getattr(technical, column):
                setattr(order, f"old_{column}", getattr(technical, column))
            setattr(technical, column, value)
        if changes.get("router_model"):
            technical.router_model = changes["router_model"]
        technical.updated_at = datetime.utcnow()
        technical.updated_by_user_id = user_id
        self.session.add(technical)

    # --- Lifecycle actions ---

    def run_lifecycle_action(self, action: LifecycleAction, order: ServiceOrder,
                             updated_by: str = "System") -> LifecycleResult:
        handlers = {
            LifecycleAction.RECONNECTION: self.attempt_reconnection,
            LifecycleAction.DISCONNECTION: self.attempt_disconnection,
            LifecycleAction.PULLOUT: self.attempt_pullout,
            LifecycleAction.MIGRATION: self.attempt_migration,
        }
        return handlers[action](order, updated_by)

    def _load(self, order: ServiceOrder):
        """(account, username) for the order, reloaded from the database."""
        account = self.billing.get_by_account_no(order.account_no)
        if account is None:
            return None, None
        self.session.refresh(account)
        return account, self.billing.get_pppoe_username(account)

    def attempt_reconnection(self, order: ServiceOrder, updated_by: str = "System") -> LifecycleResult:
        try:
            account, username = self._load(order)
            if account is None:
                logger.error(f"Reconnection for {order.account_no}: billing account not found")
                return LifecycleResult.FAILED
            if not username:
                return LifecycleResult.NO_USERNAME
            plan = self.billing.get_plan(account)
            if not plan:
                return LifecycleResult.NO_PLAN

            result = self.radius.reconnect_user(username, plan.plan_name, order.account_no, updated_by)
            if result["status"] != "success":
                logger.warning(f"Reconnection for {order.account_no} failed: {result['message']}")
                return LifecycleResult.FAILED

            fee = SettingsService(self.session).get_setting("reconnection_fee", "0")
            self._finish(account, LifecycleAction.RECONNECTION, ReconnectionLog(
                account_id=account.id,
                account_no=account.account_no,
                username=username,
                plan_id=account.plan_id,
                reconnection_fee=float(fee or 0),
                remarks=f"Service order {order.ticket_id}",
            ), plan.plan_name)
            return LifecycleResult.SUCCESS
        except Exception as e:
            self.session.rollback()
            logger.error(f"Reconnection for {order.account_no} raised: {e}")
            return LifecycleResult.EXCEPTION

    def _disconnect(self, order: ServiceOrder, action: LifecycleAction, remarks: str,
                    updated_by: str) -> LifecycleResult:
        try:
            account, username = self._load(order)
            if account is None:
                logger.error(f"{action.value} for {order.account_no}: billing account not found")
                return LifecycleResult.FAILED
            if not username:
                return LifecycleResult.NO_USERNAME

            result = self.radius.disconnect_user(username, order.account_no, remarks, updated_by)
            if result["status"] != "success":
                logger.warning(f"{action.value} for {order.account_no} failed: {result['message']}")
                return LifecycleResult.FAILED

            plan = self.billing.get_plan(account)
            self._finish(account, action, DisconnectionLog(
                account_id=account.id,
                account_no=account.account_no,
                username=username,
                remarks=f"{remarks} - service order {order.ticket_id}",
            ), plan.plan_name if plan else "")
            return LifecycleResult.SUCCESS
        except Exception as e:
            self.session.rollback()
            logger.error(f"{action.value} for {order.account_no} raised: {e}")
            return LifecycleResult.EXCEPTION

    def attempt_disconnection(self, order: ServiceOrder, updated_by: str = "System") -> LifecycleResult:
        return self._disconnect(order, LifecycleAction.DISCONNECTION, "Disconnected", updated_by)

    def attempt_pullout(self, order: ServiceOrder, updated_by: str = "System") -> LifecycleResult:
        return self._disconnect(order, LifecycleAction.PULLOUT, "Pullout", updated_by)

    def attempt_migration(self, order: ServiceOrder, updated_by: str = "System") -> LifecycleResult:
        """Moves the subscriber to `order.new_plan` (or re-applies the current plan)."""
        try:
            account, username = self._load(order)
            if account is None:
                logger.error(f"Migration for {order.account_no}: billing account not found")
                return LifecycleResult.FAILED
            if not username:
                return LifecycleResult.NO_USERNAME

            plan = None
            if order.new_plan:
                plan = self.session.exec(select(Plan).where(Plan.plan_name == order.new_plan)).first()
                if plan is None:
                    logger.warning(f"Migration target plan '{order.new_plan}' does not exist")
            plan = plan or self.billing.get_plan(account)
            if not plan:
                return LifecycleResult.NO_PLAN

            result = self.radius.reconnect_user(username, plan.plan_name, order.account_no, updated_by)
            if result["status"] != "success":
                logger.warning(f"Migration for {order.account_no} failed: {result['message']}")
                return LifecycleResult.FAILED

            account.plan_id = plan.id
            self._finish(account, LifecycleAction.MIGRATION, ReconnectionLog(
                account_id=account.id,
                account_no=account.account_no,
                username=username,
                plan_id=plan.id,
                remarks=f"Migrated to {plan.plan_name} - service order {order.ticket_id}",
            ), plan.plan_name)
            return LifecycleResult.SUCCESS
        except Exception as e:
            self.session.rollback()
            logger.error(f"Migration for {order.account_no} raised: {e}")
            return LifecycleResult.EXCEPTION

    def _finish(self, account: BillingAccount, action: LifecycleAction, log_row, plan_name: str) -> None:
        account.billing_status_id = LIFECYCLE_STATUS[action]
        account.updated_at = datetime.utcnow()
        self.session.add(account)
        self.session.add(log_row)
        self.session.commit()
        logger.info(f"{action.value}: {account.account_no} billing status -> {int(LIFECYCLE_STATUS[action])}")
        self.notify(account, action, plan_name)

    # --- Notifications ---

    def notify(self, account: BillingAccount, action: LifecycleAction, plan_name: str = "") -> None:
        """SMS and email notice for a lifecycle action. Never raises."""
        customer = self.session.get(Customer, account.customer_id)
        if customer is None:
            return
        context = {
            "customer_name": customer.full_name,
            "account_no": account.account_no,
            "balance": f"{account.account_balance:,.2f}",
            "plan": plan_name,
        }

        try:
            message = SmsTemplateService(self.session).build_message(action.value, context)
            result = self.sms.send(customer.contact_number_primary, message)
            if not result["success"]:
                logger.warning(f"{action.value} SMS to {account.account_no} not sent: {result.get('error')}")
        except Exception as e:
            logger.warning(f"{action.value} SMS to {account.account_no} raised: {e}")

        if not customer.email_address:
            return
        try:
            self.email.queue_from_template(action.value.upper(), {**context, "recipient_email": customer.email_address})
        except Exception as e:
            self.session.rollback()
            logger.warning(f"{action.value} email to {account.account_no} raised: {e}")
