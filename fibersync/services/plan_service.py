# fibersync/services/plan_service.py
from typing import Optional

from sqlmodel import Session, select

from ..models.plan import Plan
from .base_service import BaseCRUDService


class PlanService(BaseCRUDService[Plan]):
    unique_fields = ("plan_name",)
    order_by = "plan_name"

    def __init__(self, session: Session):
        super().__init__(session, Plan)

    def get_by_name(self, plan_name: str) -> Optional[Plan]:
        return self.session.exec(select(Plan).where(Plan.plan_name == plan_name)).first()

    def create_plan(self, plan_data: dict) -> Plan:
        if plan_data.get("price", 0) < 0:
            raise ValueError("Price must not be negative.")
        return self.create(plan_data)

    def update_plan(self, plan_id: int, plan_data: dict) -> Plan:
        if plan_data.get("price") is not None and plan_data["price"] < 0:
            raise ValueError("Price must not be negative.")
        return self.update(plan_id, plan_data)
