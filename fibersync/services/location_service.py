# fibersync/services/location_service.py
"""
Region -> city -> barangay -> village hierarchy.
Deleting a node that still has children needs an explicit cascade.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ..models.location import Barangay, City, Region, Village

logger = logging.getLogger(__name__)

# type -> (model, parent foreign key column, child type)
LOCATION_TYPES = {
    "region": (Region, None, "city"),
    "city": (City, "region_id", "barangay"),
    "barangay": (Barangay, "city_id", "village"),
    "village": (Village, "barangay_id", None),
}


class LocationInUseError(ValueError):
    """Raised when deleting a location that still has children without cascade."""

    def __init__(self, message: str, data: Dict[str, Any]):
        super().__init__(message)
        self.data = data


class LocationService:
    def __init__(self, session: Session):
        self.session = session

    def _resolve(self, location_type: str):
        if location_type not in LOCATION_TYPES:
            raise ValueError("Invalid location type")
        return LOCATION_TYPES[location_type]

    def list_locations(self, location_type: str, parent_id: Optional[int] = None) -> List[Any]:
        model, parent_field, _ = self._resolve(location_type)
        statement = select(model)
        if parent_id is not None and parent_field:
            statement = statement.where(getattr(model, parent_field) == parent_id)
        return self.session.exec(statement.order_by(model.name)).all()

    def add_location(self, location_type: str, name: str, parent_id: Optional[int] = None):
        model, parent_field, _ = self._resolve(location_type)
        name = (name or "").strip()
        if not name:
            raise ValueError("Name is required")

        if parent_field:
            if parent_id is None:
                raise ValueError(f"{parent_field} is required")
            parent_type = next(t for t, v in LOCATION_TYPES.items() if v[2] == location_type)
            parent_model = LOCATION_TYPES[parent_type][0]
            if not self.session.get(parent_model, parent_id):
                raise FileNotFoundError(f"{parent_type.capitalize()} not found")

        duplicate = select(model).where(func.lower(model.name) == name.lower())
        if parent_field:
            duplicate = duplicate.where(getattr(model, parent_field) == parent_id)
        if self.session.exec(duplicate).first():
            raise ValueError(f"A {location_type} with this name already exists")

        record = model(name=name, **({parent_field: parent_id} if parent_field else {}))
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def rename_location(self, location_type: str, location_id: int, name: str):
        model, _, _ = self._resolve(location_type)
        record = self.session.get(model, location_id)
        if not record:
            raise FileNotFoundError(f"{location_type.capitalize()} not found")
        if not name or not name.strip():
            raise ValueError("Name is required")
        record.name = name.strip()
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def _children(self, location_type: str, location_id: int) -> List[Any]:
        _, _, child_type = LOCATION_TYPES[location_type]
        if not child_type:
            return []
        child_model, child_parent_field, _ = LOCATION_TYPES[child_type]
        return self.session.exec(
            select(child_model).where(getattr(child_model, child_parent_field) == location_id)
        ).all()

    def _subtree_counts(self, location_type: str, location_id: int) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        frontier = [(location_type, location_id)]
        while frontier:
            current_type, current_id = frontier.pop()
            child_type = LOCATION_TYPES[current_type][2]
            for child in self._children(current_type, current_id):
                counts[f"{child_type}_count"] = counts.get(f"{child_type}_count", 0) + 1
                frontier.append((child_type, child.id))
        return counts

    def _delete_subtree(self, location_type: str, location_id: int) -> None:
        child_type = LOCATION_TYPES[location_type][2]
        for child in self._children(location_type, location_id):
            self._delete_subtree(child_type, child.id)
            self.session.delete(child)

    def delete_location(self, location_type: str, location_id: int, cascade: bool = False) -> None:
        """
        Deletes a location. With children present and cascade off, raises
        LocationInUseError carrying the child counts. Cascade deletes run in
        a single transaction.
        """
        model, _, _ = self._resolve(location_type)
        record = self.session.get(model, location_id)
        if not record:
            raise FileNotFoundError(f"{location_type.capitalize()} not found")

        counts = self._subtree_counts(location_type, location_id)
        if counts and not cascade:
            noun = {"region": "cities and barangays", "city": "barangays", "barangay": "villages"}
            raise LocationInUseError(
                f"Cannot delete {location_type}: contains {noun.get(location_type, 'children')}",
                {"can_cascade": True, "type": location_type, "name": record.name, **counts},
            )

        try:
            self._delete_subtree(location_type, location_id)
            self.session.delete(record)
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.exception(f"Cascade delete of {location_type} {location_id} rolled back")
            raise
