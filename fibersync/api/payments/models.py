# fibersync/api/payments/models.py
from typing import Optional

from pydantic import BaseModel


# Portal payloads keep every field optional so the routes can answer with
# the portal's own error envelope instead of a generic 422.
class PaymentCreateRequest(BaseModel):
    account_no: Optional[str] = None
    amount: Optional[float] = None


class AccountRequest(BaseModel):
    account_no: Optional[str] = None


class PaymentStatusRequest(BaseModel):
    reference_no: Optional[str] = None
