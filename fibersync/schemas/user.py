# fibersync/schemas/user.py
"""
Pydantic schemas for FastAPI Users.
These schemas control what staff data is sent/received via the API.
"""
from typing import Optional
from fastapi_users import schemas
import uuid


class UserRead(schemas.BaseUser[uuid.UUID]):
    """
    Staff user as returned by the API. The password hash is never exposed.
    """

    username: str
    role: str
    full_name: Optional[str] = None
    contact_number: Optional[str] = None
    disabled: bool


class UserCreate(schemas.BaseUserCreate):
    """
    New staff user. Email is a FastAPI Users requirement; login is by username.
    """

    username: str
    email: str
    password: str
    role: str = "billing"
    full_name: Optional[str] = None
    contact_number: Optional[str] = None


class UserUpdate(schemas.BaseUserUpdate):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None
    full_name: Optional[str] = None
    contact_number: Optional[str] = None
    disabled: Optional[bool] = None
