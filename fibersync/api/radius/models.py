# fibersync/api/radius/models.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RadiusConfigCreate(BaseModel):
    ssl_type: str = "https"
    ip: str
    port: int = 443
    username: str
    password: str


class RadiusConfigUpdate(BaseModel):
    ssl_type: Optional[str] = None
    ip: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None  # blank keeps the stored one


class RadiusConfigRead(BaseModel):
    """Never carries the password."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    ssl_type: str
    ip: str
    port: int
    username: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DisconnectRequest(BaseModel):
    username: str
    account_no: str = ""
    remarks: str = ""


class ReconnectRequest(BaseModel):
    username: str
    plan: str
    account_no: str = ""


class UpdateCredentialsRequest(BaseModel):
    username: str
    new_username: str
    new_password: str
    account_no: str = ""


class OnlineStatusRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account_no: str
    username: Optional[str] = None
    session_status: Optional[str] = None
    session_group: Optional[str] = None
    ip_address: Optional[str] = None
    session_mac_address: Optional[str] = None
    total_download: Optional[int] = None
    total_upload: Optional[int] = None
    updated_at: Optional[datetime] = None
