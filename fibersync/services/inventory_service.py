# fibersync/services/inventory_service.py
"""
Inventory items, categories and stock movements. On-hand quantity is the
sum of IN movements minus OUT movements.
"""
from typing import Any, Dict, List

from sqlalchemy import case, func
from sqlmodel import Session, select

from ..core.constants import InventoryMovement
from ..models.inventory import InventoryCategory, InventoryItem, InventoryLog
from .base_service import BaseCRUDService


class InventoryCategoryService(BaseCRUDService[InventoryCategory]):
    unique_fields = ("name",)
    order_by = "name"

    def __init__(self, session: Session):
        super().__init__(session, InventoryCategory)


class InventoryService(BaseCRUDService[InventoryItem]):
    unique_fields = ("item_name",)
    order_by = "item_name"

    def __init__(self, session: Session):
        super().__init__(session, InventoryItem)

    def _stock_levels(self) -> Dict[int, int]:
        signed = case(
            (InventoryLog.log_type == InventoryMovement.IN.value, InventoryLog.quantity),
            else_=-InventoryLog.quantity,
        )
        rows = self.session.exec(
            select(InventoryLog.item_id, func.sum(signed)).group_by(InventoryLog.item_id)
        ).all()
        return {item_id: int(total or 0) for item_id, total in rows}

    def get_on_hand(self, item_id: int) -> int:
        return self._stock_levels().get(item_id, 0)

    def get_items_with_stock(self) -> List[Dict[str, Any]]:
        levels = self._stock_levels()
        items = []
        for item in self.get_all():
            data = item.model_dump()
            data["on_hand"] = levels.get(item.id, 0)
            items.append(data)
        return items

    def get_low_stock(self) -> List[Dict[str, Any]]:
        """Items at or below their quantity_alert threshold."""
        return [i for i in self.get_items_with_stock() if i["on_hand"] <= i["quantity_alert"]]

    def record_movement(self, item_id: int, data: Dict[str, Any]) -> InventoryLog:
        self.get_by_id(item_id)

        log_type = str(data.get("log_type", "")).upper()
        if log_type not in (InventoryMovement.IN.value, InventoryMovement.OUT.value):
            raise ValueError("log_type must be IN or OUT.")
        quantity = data.get("quantity") or 0
        if quantity <= 0:
            raise ValueError("Quantity must be greater than zero.")
        if log_type == InventoryMovement.OUT.value and quantity > self.get_on_hand(item_id):
            raise ValueError("Not enough stock on hand.")

        movement = InventoryLog(**{**data, "item_id": item_id, "log_type": log_type})
        self.session.add(movement)
        self.session.commit()
        self.session.refresh(movement)
        return movement

    def get_movements(self, item_id: int) -> List[InventoryLog]:
        self.get_by_id(item_id)
        return self.session.exec(
            select(InventoryLog)
            .where(InventoryLog.item_id == item_id)
            .order_by(InventoryLog.date.desc())
        ).all()

    def delete(self, id: int) -> None:
        item = self.get_by_id(id)
        for movement in self.session.exec(select(InventoryLog).where(InventoryLog.item_id == id)).all():
            self.session.delete(movement)
        self.session.delete(item)
        self.session.commit()
