# fibersync/models/radius.py
"""
RADIUS REST API endpoints, the logs of network operations applied to
subscribers through them and the synced session state.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class RadiusConfig(SQLModel, table=True):
    """
    A RADIUS user-manager REST endpoint. Every operation is applied to all
    configured endpoints. The password is stored Fernet-encrypted.
    """

    __tablename__ = "radius_config"

    id: Optional[int] = Field(default=None, primary_key=True)
    ssl_type: str = Field(default="https")
    ip: str = Field(nullable=False)
    port: int = Field(default=443)
    username: str = Field(nullable=False)
    password: str = Field(nullable=False)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)

    @property
    def base_url(self) -> str:
        return f"{self.ssl_type}://{self.ip}:{self.port}"


class ReconnectionLog(SQLModel, table=True):
    __tablename__ = "reconnection_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: Optional[int] = Field(default=None, index=True)
    account_no: str = Field(index=True, nullable=False)
    username: Optional[str] = Field(default=None)
    plan_id: Optional[int] = Field(default=None)
    reconnection_fee: float = Field(default=0.0)
    remarks: Optional[str] = Field(default=None)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow, index=True)
    created_by_user_id: Optional[uuid.UUID] = Field(default=None)


class DisconnectionLog(SQLModel, table=True):
    __tablename__ = "disconnection_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: Optional[int] = Field(default=None, index=True)
    account_no: str = Field(index=True, nullable=False)
    username: Optional[str] = Field(default=None)
    remarks: Optional[str] = Field(default=None)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow, index=True)
    created_by_user_id: Optional[uuid.UUID] = Field(default=None)


class OnlineStatus(SQLModel, table=True):
    """Last known RADIUS session state of an account, refreshed by the status sync job."""

    __tablename__ = "online_status"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: Optional[int] = Field(default=None, index=True)
    account_no: str = Field(unique=True, index=True, nullable=False)
    username: Optional[str] = Field(default=None)
    session_status: Optional[str] = Field(default=None)  # Online, Offline, Blocked, Inactive, Not Found
    session_group: Optional[str] = Field(default=None)
    session_id: Optional[str] = Field(default=None)
    ip_address: Optional[str] = Field(default=None)
    session_mac_address: Optional[str] = Field(default=None)
    total_download: Optional[int] = Field(default=None)
    total_upload: Optional[int] = Field(default=None)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
