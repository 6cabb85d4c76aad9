# fibersync/services/pppoe_service.py
"""
PPPoE credential generation from the configured username/password patterns.
"""
import logging
import re
import secrets
import string
import time
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..models.billing_account import TechnicalDetail
from ..models.job_order import JobOrder
from ..models.pppoe import PppoeUsernamePattern
from .base_service import BaseCRUDService

logger = logging.getLogger(__name__)

COMMON_PART_TYPES = {
    "first_name",
    "first_name_initial",
    "middle_name",
    "middle_name_initial",
    "last_name",
    "last_name_initial",
    "mobile_number",
    "mobile_number_last_4",
    "mobile_number_last_6",
    "random_4_digits",
    "random_6_digits",
    "random_letters_4",
    "random_letters_6",
    "random_alphanumeric_4",
    "random_alphanumeric_6",
}
PART_TYPES = {
    "username": COMMON_PART_TYPES | {"tech_input"},
    "password": COMMON_PART_TYPES | {"custom_password"},
}

LETTERS = string.ascii_letters
ALPHANUMERIC = string.digits + string.ascii_letters
MIN_PASSWORD_LENGTH = 6
MAX_USERNAME_SUFFIX = 999


def _digits(value: Optional[str]) -> str:
    return re.sub(r"[^0-9]", "", value or "")


def random_string(length: int, alphabet: str = ALPHANUMERIC) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def sanitize_username(username: str) -> str:
    return re.sub(r"[^a-z0-9]", "", username.lower())


def sanitize_password(password: str) -> str:
    return re.sub(r"\s+", "", password)


def part_value(part_type: str, data: Dict[str, Any]) -> str:
    """Value of one pattern part for the applicant in `data`."""
    first_name = (data.get("first_name") or "").strip()
    middle = (data.get("middle_initial") or "").strip()
    last_name = (data.get("last_name") or "").strip()
    mobile = _digits(data.get("mobile_number"))

    values = {
        "first_name": lambda: first_name.lower(),
        "first_name_initial": lambda: first_name[:1].lower(),
        "middle_name": lambda: middle.lower(),
        "middle_name_initial": lambda: middle[:1].lower(),
        "last_name": lambda: last_name.lower(),
        "last_name_initial": lambda: last_name[:1].lower(),
        "mobile_number": lambda: mobile,
        "mobile_number_last_4": lambda: mobile[-4:],
        "mobile_number_last_6": lambda: mobile[-6:],
        "random_4_digits": lambda: f"{secrets.randbelow(10000):04d}",
        "random_6_digits": lambda: f"{secrets.randbelow(1000000):06d}",
        "random_letters_4": lambda: random_string(4, LETTERS),
        "random_letters_6": lambda: random_string(6, LETTERS),
        "random_alphanumeric_4": lambda: random_string(4),
        "random_alphanumeric_6": lambda: random_string(6),
        "custom_password": lambda: data.get("custom_password") or "",
    }
    getter = values.get(part_type)
    return getter() if getter else ""


class PppoeService:
    def __init__(self, session: Session):
        self.session = session

    def get_pattern(self, pattern_type: str) -> Optional[PppoeUsernamePattern]:
        return self.session.exec(
            select(PppoeUsernamePattern)
            .where(PppoeUsernamePattern.pattern_type == pattern_type)
            .order_by(PppoeUsernamePattern.updated_at.desc())
        ).first()

    @staticmethod
    def fallback_username(data: Dict[str, Any]) -> str:
        last_name = re.sub(r"\s+", "", (data.get("last_name") or "").lower())
        return sanitize_username(last_name + _digits(data.get("mobile_number")))

    def generate_username(self, data: Dict[str, Any]) -> str:
        pattern = self.get_pattern("username")
        if not pattern or not isinstance(pattern.sequence, list):
            return self.fallback_username(data)

        parts = []
        for part in pattern.sequence:
            part_type = part.get("type", "") if isinstance(part, dict) else ""
            if part_type == "tech_input":
                value = data.get("tech_input_username") or ""
            else:
                value = part_value(part_type, data)
            if value:
                parts.append(value)

        username = sanitize_username("".join(parts))
        return username or self.fallback_username(data)

    def generate_password(self, data: Dict[str, Any]) -> str:
        pattern = self.get_pattern("password")
        if not pattern or not isinstance(pattern.sequence, list):
            return random_string(12)

        parts = []
        for part in pattern.sequence:
            part_type = part.get("type", "") if isinstance(part, dict) else ""
            if part_type == "custom_password":
                value = part.get("value") or data.get("custom_password") or ""
            else:
                value = part_value(part_type, data)
            if value:
                parts.append(value)

        password = sanitize_password("".join(parts))
        if len(password) < MIN_PASSWORD_LENGTH:
            return random_string(12)
        return password

    def is_username_unique(self, username: str, exclude_job_order_id: Optional[int] = None) -> bool:
        job_orders = select(JobOrder.id).where(JobOrder.pppoe_username == username)
        if exclude_job_order_id:
            job_orders = job_orders.where(JobOrder.id != exclude_job_order_id)
        if self.session.exec(job_orders).first() is not None:
            return False
        technical = select(TechnicalDetail.id).where(TechnicalDetail.username == username)
        return self.session.exec(technical).first() is None

    def generate_unique_username(self, data: Dict[str, Any], exclude_job_order_id: Optional[int] = None) -> str:
        """Generated username, suffixed with 1..999 (then a timestamp) until unused."""
        base = self.generate_username(data)
        if self.is_username_unique(base, exclude_job_order_id):
            return base
        for counter in range(1, MAX_USERNAME_SUFFIX + 1):
            candidate = f"{base}{counter}"
            if self.is_username_unique(candidate, exclude_job_order_id):
                return candidate
        logger.warning(f"Username suffixes exhausted for '{base}', using timestamp")
        return f"{base}{int(time.time())}"

    def generate_credentials(self, data: Dict[str, Any], exclude_job_order_id: Optional[int] = None) -> Dict[str, str]:
        return {
            "username": self.generate_unique_username(data, exclude_job_order_id),
            "password": self.generate_password(data),
        }


class PppoePatternService(BaseCRUDService[PppoeUsernamePattern]):
    order_by = "pattern_type"

    def __init__(self, session: Session):
        super().__init__(session, PppoeUsernamePattern)

    @staticmethod
    def validate(pattern_type: str, sequence: List[Dict[str, Any]]) -> None:
        if pattern_type not in PART_TYPES:
            raise ValueError("pattern_type must be 'username' or 'password'.")
        if not sequence:
            raise ValueError("sequence must contain at least one part.")
        for part in sequence:
            if part.get("type") not in PART_TYPES[pattern_type]:
                raise ValueError(f"Unsupported {pattern_type} part type: {part.get('type')}")

    def create(self, data: Dict[str, Any]) -> PppoeUsernamePattern:
        self.validate(data.get("pattern_type"), data.get("sequence") or [])
        return super().create(data)

    def update(self, id: int, data: Dict[str, Any]) -> PppoeUsernamePattern:
        current = self.get_by_id(id)
        self.validate(data.get("pattern_type", current.pattern_type), data.get("sequence", current.sequence))
        return super().update(id, data)
