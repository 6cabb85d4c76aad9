# fibersync/core/config.py
"""
Integration settings for the external services FiberSync talks to
(Xendit, RADIUS REST API, Itexmo SMS, Resend email) plus billing offsets.

Values come from the environment (or `.env`, loaded in main.py).
"""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "development"
    app_url: str = "http://localhost:8000"

    # --- Xendit ---
    xendit_api_key: str = ""
    xendit_callback_token: str = ""
    xendit_api_url: str = "https://api.xendit.co"
    xendit_timeout: float = 30.0
    payer_fallback_email: str = "noreply@atssfiber.ph"
    invoice_duration_seconds: int = 86400
    pending_payment_ttl_hours: int = 24

    # --- Payment worker ---
    payment_worker_batch_size: int = 20
    payment_worker_lock_timeout: int = 300
    payment_retry_batch_size: int = 10
    payment_worker_interval_seconds: int = 60
    payment_retry_interval_seconds: int = 600

    # --- RADIUS REST ---
    radius_timeout: float = 10.0
    radius_retries: int = 3
    radius_retry_delay: float = 1.0

    # --- SMS (Itexmo) ---
    itexmo_api_url: str = "https://api.itexmo.com/api/broadcast"
    sms_timeout: float = 30.0
    sms_retries: int = 3
    sms_retry_delay: float = 2.0

    # --- Email (Resend) ---
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com/emails"
    mail_from: str = "billing@atssfiber.ph"
    email_batch_size: int = 50
    email_queue_interval_seconds: int = 300

    # --- Billing offsets (days); rows of the settings table override them ---
    advance_generation_days: int = 7
    due_days_add: int = 7
    overdue_offset: int = 1
    dc_notice_offset: int = 3
    dc_actual_offset: int = 4
    pullout_offset: int = 30
    disconnection_fee: float = 0.0
    payment_link: str = "https://pay.atssfiber.ph"

    # --- Scheduled billing jobs (local time) ---
    billing_generation_hour: int = 1
    auto_disconnect_hour: int = 2
    billing_notice_hour: int = 10
    radius_sync_interval_seconds: int = 120
    billing_lock_timeout: int = 1800


@lru_cache
def get_settings() -> Settings:
    return Settings()
