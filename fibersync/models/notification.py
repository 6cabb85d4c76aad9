# fibersync/models/notification.py
"""
SMS (Itexmo) and email (Resend) notification tables.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class SmsConfig(SQLModel, table=True):
    """Itexmo gateway credentials. The password is stored Fernet-encrypted."""

    __tablename__ = "sms_config"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(nullable=False)
    password: str = Field(nullable=False)
    code: str = Field(nullable=False)
    sender: Optional[str] = Field(default=None)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)


class SmsTemplate(SQLModel, table=True):
    __tablename__ = "sms_templates"

    id: Optional[int] = Field(default=None, primary_key=True)
    template_name: str = Field(nullable=False)
    template_type: str = Field(nullable=False, index=True)  # e.g. reconnection, disconnection
    message_content: str = Field(nullable=False)
    is_active: bool = Field(default=True)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)


class SmsBlastLog(SQLModel, table=True):
    __tablename__ = "sms_blast_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    message: str = Field(nullable=False)
    filter_type: Optional[str] = Field(default=None)
    filter_value: Optional[str] = Field(default=None)
    message_count: int = Field(default=0)
    failed_count: int = Field(default=0)
    credit_used: int = Field(default=0)
    timestamp: Optional[datetime] = Field(default_factory=datetime.utcnow)
    created_by_user_id: Optional[uuid.UUID] = Field(default=None)


class EmailTemplate(SQLModel, table=True):
    __tablename__ = "email_templates"

    id: Optional[int] = Field(default=None, primary_key=True)
    template_code: str = Field(unique=True, index=True, nullable=False)
    subject_line: str = Field(nullable=False)
    body_html: str = Field(nullable=False)
    is_active: bool = Field(default=True)
    email_sender: Optional[str] = Field(default=None)
    sender_name: Optional[str] = Field(default=None)
    reply_to: Optional[str] = Field(default=None)
    cc: Optional[str] = Field(default=None)
    bcc: Optional[str] = Field(default=None)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)


class EmailQueue(SQLModel, table=True):
    __tablename__ = "email_queue"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_no: Optional[str] = Field(default=None, index=True)
    recipient_email: str = Field(nullable=False)
    cc: Optional[str] = Field(default=None)
    bcc: Optional[str] = Field(default=None)
    subject: str = Field(nullable=False)
    body_html: str = Field(nullable=False)
    attachment_path: Optional[str] = Field(default=None)
    email_sender: Optional[str] = Field(default=None)
    sender_name: Optional[str] = Field(default=None)
    reply_to: Optional[str] = Field(default=None)
    status: str = Field(default="pending", index=True)  # pending, sent, failed
    attempts: int = Field(default=0)
    error_message: Optional[str] = Field(default=None)
    sent_at: Optional[datetime] = Field(default=None)
    failed_at: Optional[datetime] = Field(default=None)
    created_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
