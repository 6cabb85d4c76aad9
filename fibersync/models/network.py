# fibersync/models/network.py
"""
Passive network topology metadata: LCPs, NAPs, ports, VLANs and the
LCP/NAP boxes installed in the field.
"""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Lcp(SQLModel, table=True):
    __tablename__ = "lcp"

    id: Optional[int] = Field(default=None, primary_key=True)
    lcp_name: str = Field(unique=True, index=True, nullable=False)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)


class Nap(SQLModel, table=True):
    __tablename__ = "nap"

    id: Optional[int] = Field(default=None, primary_key=True)
    nap_name: str = Field(unique=True, index=True, nullable=False)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)


class Port(SQLModel, table=True):
    __tablename__ = "ports"

    id: Optional[int] = Field(default=None, primary_key=True)
    label: str = Field(nullable=False)
    port_id: str = Field(unique=True, index=True, nullable=False)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)


class Vlan(SQLModel, table=True):
    __tablename__ = "vlans"

    id: Optional[int] = Field(default=None, primary_key=True)
    vlan_id: str = Field(unique=True, index=True, nullable=False)
    value: int = Field(nullable=False)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)


class LcpNapLocation(SQLModel, table=True):
    __tablename__ = "lcpnap_locations"

    id: Optional[int] = Field(default=None, primary_key=True)
    lcpnap_name: str = Field(unique=True, index=True, nullable=False)
    lcp: Optional[str] = Field(default=None)
    nap: Optional[str] = Field(default=None)
    port_total: Optional[int] = Field(default=None)
    street: Optional[str] = Field(default=None)
    barangay: Optional[str] = Field(default=None)
    city: Optional[str] = Field(default=None)
    region: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None)
    coordinates: Optional[str] = Field(default=None)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
