# fibersync/models/user.py
"""
Staff user model for FastAPI Users with SQLModel.

FastAPI Users fields: id (UUID), email, hashed_password, is_active,
is_superuser, is_verified. Staff fields: username (login), role
(admin, billing, technician), full_name, contact_number.
"""

import uuid as uuid_pkg

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid_pkg.UUID = Field(default_factory=uuid_pkg.uuid4, primary_key=True, nullable=False)
    email: str = Field(unique=True, index=True, nullable=False, max_length=320)
    hashed_password: str = Field(nullable=False, max_length=1024)
    is_active: bool = Field(default=True, nullable=False)
    is_superuser: bool = Field(default=False, nullable=False)
    is_verified: bool = Field(default=False, nullable=False)

    username: str = Field(index=True, unique=True, nullable=False, max_length=100)
    role: str = Field(default="billing", max_length=50)
    full_name: str | None = Field(default=None, max_length=255)
    contact_number: str | None = Field(default=None, max_length=50)

    @property
    def disabled(self) -> bool:
        return not self.is_active
