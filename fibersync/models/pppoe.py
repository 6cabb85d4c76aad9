# fibersync/models/pppoe.py
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class PppoeUsernamePattern(SQLModel, table=True):
    """
    Recipe for generating PPPoE credentials.

    `sequence` is an ordered list of parts, e.g.
    [{"type": "last_name"}, {"type": "mobile_number_last_4"}].
    """

    __tablename__ = "pppoe_username_patterns"

    id: Optional[int] = Field(default=None, primary_key=True)
    pattern_name: str = Field(nullable=False)
    pattern_type: str = Field(nullable=False, index=True)  # username | password
    sequence: list = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
