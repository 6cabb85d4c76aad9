# fibersync/core/bootstrap.py
import logging
import os
import uuid

from sqlmodel import Session, select

from ..db.engine_sync import create_sync_db_and_tables, sync_engine
from ..models.user import User
from ..services.billing_account_service import BillingAccountService
from ..services.settings_service import SettingsService
from .users import get_password_hash

logger = logging.getLogger(__name__)


def bootstrap_system() -> None:
    """
    Idempotent bootstrapping:
    1. Creates the tables (SQLModel).
    2. Seeds the billing statuses and default settings.
    3. Creates the first admin from ADMIN_EMAIL / ADMIN_PASSWORD when no user exists.
    """
    try:
        logger.info("[Bootstrap] Initializing database schema...")
        create_sync_db_and_tables()

        with Session(sync_engine) as session:
            BillingAccountService(session).seed_statuses()
            SettingsService(session).seed_defaults()
            logger.info("[Bootstrap] Billing statuses and default settings seeded.")

            if session.exec(select(User)).first():
                logger.info("[Bootstrap] Users found, skipping admin creation.")
                return

            admin_email = os.getenv("ADMIN_EMAIL")
            admin_password = os.getenv("ADMIN_PASSWORD")
            admin_username = os.getenv("ADMIN_USERNAME", "admin")
            if admin_email and admin_password:
                start_auto_creation(session, admin_email, admin_username, admin_password)
            else:
                logger.warning("[Bootstrap] ADMIN_EMAIL or ADMIN_PASSWORD not set. No admin user created.")
    except Exception as e:
        logger.critical(f"[Bootstrap] Fatal error during initialization: {e}")
        raise


def start_auto_creation(session: Session, email: str, username: str, password: str) -> User:
    """Creates the first superuser silently."""
    try:
        new_user = User(
            id=uuid.uuid4(),
            email=email,
            username=username,
            hashed_password=get_password_hash(password),
            role="admin",
            is_active=True,
            is_superuser=True,
            is_verified=True,
        )
        session.add(new_user)
        session.commit()
        logger.info(f"[Bootstrap] Created first admin user: {email}")
        return new_user
    except Exception as e:
        logger.error(f"[Bootstrap] Failed to create admin user: {e}")
        session.rollback()
        raise
