# fibersync/api/network/models.py
from pydantic import BaseModel


class LcpCreate(BaseModel):
    lcp_name: str


class LcpUpdate(BaseModel):
    lcp_name: str | None = None


class NapCreate(BaseModel):
    nap_name: str


class NapUpdate(BaseModel):
    nap_name: str | None = None


class PortCreate(BaseModel):
    label: str
    port_id: str


class PortUpdate(BaseModel):
    label: str | None = None
    port_id: str | None = None


class VlanCreate(BaseModel):
    vlan_id: str
    value: int


class VlanUpdate(BaseModel):
    vlan_id: str | None = None
    value: int | None = None


class LcpNapLocationCreate(BaseModel):
    lcpnap_name: str | None = None  # defaults to "<lcp> to <nap>"
    lcp: str | None = None
    nap: str | None = None
    port_total: int | None = None
    street: str | None = None
    barangay: str | None = None
    city: str | None = None
    region: str | None = None
    location: str | None = None
    coordinates: str | None = None


class LcpNapLocationUpdate(LcpNapLocationCreate):
    pass
