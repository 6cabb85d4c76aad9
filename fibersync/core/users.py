# fibersync/core/users.py
"""
FastAPI Users configuration and role-based access control for staff accounts.
"""
import logging
import os
import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi_users import BaseUserManager, FastAPIUsers, UUIDIDMixin
from fastapi_users.authentication import (
    AuthenticationBackend,
    BearerTransport,
    CookieTransport,
    JWTStrategy,
)
from fastapi_users.db import SQLAlchemyUserDatabase
from fastapi_users.password import PasswordHelper
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fibersync.db.engine import get_session
from fibersync.models.user import User

logger = logging.getLogger(__name__)

# --- Configuration ---
SECRET = os.getenv("SECRET_KEY")
if not SECRET:
    raise RuntimeError("FATAL: SECRET_KEY not configured in .env")

ACCESS_TOKEN_COOKIE_NAME = "fibersync_access_token"
ACCESS_TOKEN_LIFETIME_SECONDS = 28800  # 8 hours, one office shift
APP_ENV = os.getenv("APP_ENV", "development")

# --- Authentication Transports ---
# 1. Bearer Token Transport (API clients, Authorization header)
bearer_transport = BearerTransport(tokenUrl="auth/jwt/login")

# 2. Cookie Transport (staff browser sessions)
cookie_transport = CookieTransport(
    cookie_name=ACCESS_TOKEN_COOKIE_NAME,
    cookie_max_age=ACCESS_TOKEN_LIFETIME_SECONDS,
    cookie_httponly=True,  # not readable from JavaScript
    cookie_secure=(APP_ENV == "production"),  # HTTPS only in production
    cookie_samesite="lax",
)


# --- JWT Strategy ---
def get_jwt_strategy() -> JWTStrategy:
    """Returns the JWT strategy shared by both backends"""
    return JWTStrategy(secret=SECRET, lifetime_seconds=ACCESS_TOKEN_LIFETIME_SECONDS)


# --- Authentication Backends ---
# JWT Backend (Bearer token for API)
auth_backend_jwt = AuthenticationBackend(
    name="jwt",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

# Cookie Backend (HTTP-only cookie for the staff web UI)
auth_backend_cookie = AuthenticationBackend(
    name="cookie",
    transport=cookie_transport,
    get_strategy=get_jwt_strategy,
)


# --- User Manager ---
class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    """
    Staff account lifecycle hooks. Registration, login and password reset
    requests are written to the application log.
    """

    reset_password_token_secret = SECRET
    verification_token_secret = SECRET

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        """Called after a staff user is registered"""
        logger.info(f"Staff user registered: {user.username} ({user.email})")

    async def on_after_login(
        self, user: User, request: Optional[Request] = None, response=None
    ):
        """Called after a successful login"""
        logger.info(f"Staff user logged in: {user.username}")

    async def on_after_forgot_password(
        self, user: User, token: str, request: Optional[Request] = None
    ):
        """Called after a password reset request"""
        logger.info(f"Password reset requested for: {user.username}")


# --- Custom User Database Adapter (Username-based lookup) ---
class SQLAlchemyUserDatabaseByUsername(SQLAlchemyUserDatabase):
    """
    Looks users up by username instead of email, so the OAuth2 login form's
    'username' field is the staff username.
    """

    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Override: `email` carries the value of the login form's `username`
        field (standard OAuth2 form field name), matched against User.username.
        """
        statement = select(self.user_table).where(self.user_table.username == email)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()


# --- Dependency Injectors ---
async def get_user_db(session: AsyncSession = Depends(get_session)):
    """User database adapter with username-based login."""
    yield SQLAlchemyUserDatabaseByUsername(session, User)


# --- Argon2 Password Helper ---
# passlib with Argon2 for password hashing
argon2_context = CryptContext(schemes=["argon2"], deprecated="auto")
password_helper = PasswordHelper(argon2_context)


def get_password_hash(password: str) -> str:
    """Argon2 hash for a plain password, used when staff users are created outside the auth routes."""
    return password_helper.hash(password)


async def get_user_manager(user_db=Depends(get_user_db)):
    """
    Dependency to get the user manager instance.
    Uses Argon2 for password hashing via PasswordHelper.
    """
    yield UserManager(user_db, password_helper)


# --- FastAPI Users Instance ---
fastapi_users = FastAPIUsers[User, uuid.UUID](
    get_user_manager,
    [auth_backend_jwt, auth_backend_cookie],  # Bearer and cookie auth
)

# --- Dependency Shortcuts ---
current_active_user = fastapi_users.current_user(active=True)
current_superuser = fastapi_users.current_user(active=True, superuser=True)


# --- Role-Based Access Control ---
# Valid role values (lowercase strings as stored in users.role)
VALID_ROLES = ["admin", "billing", "technician"]


class RoleChecker:
    """
    Dependency class that checks the current user has one of the allowed roles.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: User = Depends(RoleChecker(["admin"]))):
            ...
    """

    def __init__(self, allowed_roles: list[str]):
        self.allowed_roles = allowed_roles

    def __call__(self, user: User = Depends(current_active_user)) -> User:
        if user.role not in self.allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join(self.allowed_roles)}. Your role: {user.role}",
            )
        return user


# Pre-configured role checkers for the API routers
require_admin = RoleChecker(["admin"])
require_billing = RoleChecker(["admin", "billing"])
require_technician = RoleChecker(["admin", "technician"])
require_staff = RoleChecker(VALID_ROLES)
