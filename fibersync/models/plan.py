from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Plan(SQLModel, table=True):
    __tablename__ = "plans"

    id: Optional[int] = Field(default=None, primary_key=True)
    plan_name: str = Field(unique=True, index=True, nullable=False)  # e.g. "FIBER1599 50Mbps"
    description: Optional[str] = Field(default=None)
    price: float = Field(default=0.0)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
