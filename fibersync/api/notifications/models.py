# fibersync/api/notifications/models.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr


# --- SMS ---
class SmsConfigUpdate(BaseModel):
    email: str
    password: Optional[str] = None  # blank keeps the stored one
    code: str
    sender: Optional[str] = None


class SmsConfigRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    email: str
    code: str
    sender: Optional[str] = None
    updated_at: Optional[datetime] = None


class SmsSendRequest(BaseModel):
    contact_no: str
    message: str


class SmsBlastRequest(BaseModel):
    filter_type: str  # Barangay | Location | LCP | LCPNAP
    filter_value: str
    message: str


class SmsTemplateCreate(BaseModel):
    template_name: str
    template_type: str
    message_content: str
    is_active: bool = True


class SmsTemplateUpdate(BaseModel):
    template_name: Optional[str] = None
    template_type: Optional[str] = None
    message_content: Optional[str] = None
    is_active: Optional[bool] = None


# --- Email ---
class EmailTemplateCreate(BaseModel):
    template_code: str
    subject_line: str
    body_html: str
    is_active: bool = True
    email_sender: Optional[str] = None
    sender_name: Optional[str] = None
    reply_to: Optional[str] = None
    cc: Optional[str] = None
    bcc: Optional[str] = None


class EmailTemplateUpdate(BaseModel):
    template_code: Optional[str] = None
    subject_line: Optional[str] = None
    body_html: Optional[str] = None
    is_active: Optional[bool] = None
    email_sender: Optional[str] = None
    sender_name: Optional[str] = None
    reply_to: Optional[str] = None
    cc: Optional[str] = None
    bcc: Optional[str] = None


class EmailQueueCreate(BaseModel):
    recipient_email: EmailStr
    subject: str
    body_html: str
    account_no: Optional[str] = None
    cc: Optional[str] = None
    bcc: Optional[str] = None
    email_sender: Optional[str] = None
    sender_name: Optional[str] = None
    reply_to: Optional[str] = None
