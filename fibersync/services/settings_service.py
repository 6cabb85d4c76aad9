import logging
from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ValidationError
from sqlmodel import Session, select

from ..core.config import Settings, get_settings
from ..models.setting import Setting

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "company_name": "FiberSync ISP",
    "account_number_prefix": "",
    "reconnection_fee": "0",
    "support_contact": "",
}

BILLING_KEYS = (
    "advance_generation_days",
    "due_days_add",
    "overdue_offset",
    "dc_notice_offset",
    "dc_actual_offset",
    "pullout_offset",
    "disconnection_fee",
)


class BillingConfig(BaseModel):
    """Day offsets used by the scheduled billing jobs, relative to an invoice's due date."""

    advance_generation_days: int
    due_days_add: int
    overdue_offset: int
    dc_notice_offset: int
    dc_actual_offset: int
    pullout_offset: int
    disconnection_fee: float


class SettingsService:
    def __init__(self, session: Session):
        self.session = session

    def get_all_settings(self) -> Dict[str, str]:
        settings = self.session.exec(select(Setting)).all()
        return {s.key: s.value for s in settings}

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        setting = self.session.get(Setting, key)
        if setting is None:
            return default
        return setting.value

    def update_settings(self, settings_to_update: Dict[str, str]):
        for key, value in settings_to_update.items():
            setting = self.session.get(Setting, key)
            if setting:
                setting.value = value
                setting.updated_at = datetime.utcnow()
            else:
                setting = Setting(key=key, value=value)
            self.session.add(setting)

        self.session.commit()

    def get_billing_config(self, settings: Optional[Settings] = None) -> BillingConfig:
        """
        Environment defaults overlaid with the matching rows of the settings
        table. A stored value that is not a number is ignored.
        """
        settings = settings or get_settings()
        values = {key: getattr(settings, key) for key in BILLING_KEYS}
        for key in BILLING_KEYS:
            stored = self.get_setting(key)
            if stored in (None, ""):
                continue
            try:
                values[key] = BillingConfig.model_validate({**values, key: stored}).model_dump()[key]
            except ValidationError:
                logger.warning(f"Setting '{key}'='{stored}' is not a number, using {values[key]}")
        return BillingConfig(**values)

    def seed_defaults(self) -> None:
        for key, value in DEFAULT_SETTINGS.items():
            if self.session.get(Setting, key) is None:
                self.session.add(Setting(key=key, value=value))
        self.session.commit()
