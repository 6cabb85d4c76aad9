# fibersync/models/setting.py
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Setting(SQLModel, table=True):
    """Runtime-editable key/value setting (e.g. account_number_prefix)."""

    __tablename__ = "settings"

    key: str = Field(primary_key=True)
    value: str
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
