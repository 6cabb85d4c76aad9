# fibersync/services/base_service.py
"""
BaseCRUDService: generic service class for the single-table CRUD resources
(plans, LCP/NAP/ports/VLANs, inventory, templates...).
"""
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

ModelType = TypeVar("ModelType")


class BaseCRUDService(Generic[ModelType]):
    """
    Base class providing generic CRUD operations.

    Usage:
        class LcpService(BaseCRUDService[Lcp]):
            unique_fields = ("lcp_name",)

            def __init__(self, session: Session):
                super().__init__(session, Lcp)
    """

    # Columns that must be unique; checked before insert/update for a friendly 422.
    unique_fields: tuple = ()
    order_by: Optional[str] = None

    def __init__(self, session: Session, model: Type[ModelType]):
        self.session = session
        self.model = model

    @property
    def label(self) -> str:
        return self.model.__name__

    def get_all(self, offset: int = 0, limit: Optional[int] = None) -> List[ModelType]:
        """Retrieve records of the model, optionally a page of them."""
        statement = select(self.model)
        if self.order_by:
            statement = statement.order_by(getattr(self.model, self.order_by))
        if offset:
            statement = statement.offset(offset)
        if limit is not None:
            statement = statement.limit(limit)
        return self.session.exec(statement).all()

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(self.model)).one()

    def get_by_id(self, id: int) -> ModelType:
        """
        Retrieve a single record by its primary key.

        Raises:
            HTTPException: 404 if not found.
        """
        record = self.session.get(self.model, id)
        if not record:
            raise HTTPException(status_code=404, detail=f"{self.label} not found")
        return record

    def _check_unique(self, data: Dict[str, Any], exclude_id: Optional[int] = None) -> None:
        for field in self.unique_fields:
            if data.get(field) is None:
                continue
            column = getattr(self.model, field)
            statement = select(self.model).where(column == data[field])
            if exclude_id is not None:
                statement = statement.where(self.model.id != exclude_id)
            if self.session.exec(statement).first():
                raise HTTPException(
                    status_code=422,
                    detail=f"{self.label} with {field} '{data[field]}' already exists",
                )

    def create(self, data: Dict[str, Any]) -> ModelType:
        """Create a new record from a dict of field values."""
        self._check_unique(data)
        try:
            new_record = self.model(**data)
            self.session.add(new_record)
            self.session.commit()
            self.session.refresh(new_record)
            return new_record
        except IntegrityError as e:
            self.session.rollback()
            raise ValueError(f"Error creating {self.label}: {e.orig}")

    def update(self, id: int, data: Dict[str, Any]) -> ModelType:
        """
        Update an existing record.

        Raises:
            HTTPException: 404 if not found, 422 on a uniqueness clash.
        """
        record = self.get_by_id(id)
        self._check_unique(data, exclude_id=id)

        for key, value in data.items():
            setattr(record, key, value)
        if hasattr(record, "updated_at"):
            record.updated_at = datetime.utcnow()

        try:
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
            return record
        except IntegrityError as e:
            self.session.rollback()
            raise ValueError(f"Error updating {self.label}: {e.orig}")

    def delete(self, id: int) -> None:
        """Delete a record by its primary key. 404 if not found."""
        record = self.get_by_id(id)
        self.session.delete(record)
        self.session.commit()
