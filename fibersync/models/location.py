# fibersync/models/location.py
"""Geographic hierarchy: region -> city -> barangay -> village."""
from typing import Optional

from sqlmodel import Field, SQLModel


class Region(SQLModel, table=True):
    __tablename__ = "regions"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, index=True)


class City(SQLModel, table=True):
    __tablename__ = "cities"

    id: Optional[int] = Field(default=None, primary_key=True)
    region_id: int = Field(foreign_key="regions.id", nullable=False, index=True)
    name: str = Field(nullable=False, index=True)


class Barangay(SQLModel, table=True):
    __tablename__ = "barangays"

    id: Optional[int] = Field(default=None, primary_key=True)
    city_id: int = Field(foreign_key="cities.id", nullable=False, index=True)
    name: str = Field(nullable=False, index=True)


class Village(SQLModel, table=True):
    __tablename__ = "villages"

    id: Optional[int] = Field(default=None, primary_key=True)
    barangay_id: int = Field(foreign_key="barangays.id", nullable=False, index=True)
    name: str = Field(nullable=False, index=True)
