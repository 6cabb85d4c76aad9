# fibersync/services/user_service.py
import logging
from typing import List, Optional

from sqlmodel import Session, select

from ..core.users import VALID_ROLES, get_password_hash
from ..models.user import User
from ..schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: Session):
        self.session = session

    def get_all_users(self) -> List[User]:
        return self.session.exec(select(User).order_by(User.username)).all()

    @staticmethod
    def _check_role(role: Optional[str]) -> None:
        if role is not None and role not in VALID_ROLES:
            raise ValueError(f"Invalid role '{role}'. Valid roles: {', '.join(VALID_ROLES)}")

    def create_user(self, user_create: UserCreate) -> User:
        self._check_role(user_create.role)
        existing_user = self.session.exec(
            select(User).where((User.username == user_create.username) | (User.email == user_create.email))
        ).first()
        if existing_user:
            raise ValueError("Username or email already exists.")

        db_user = User(
            username=user_create.username,
            email=user_create.email,
            hashed_password=get_password_hash(user_create.password),
            role=user_create.role,
            full_name=user_create.full_name,
            contact_number=user_create.contact_number,
        )
        self.session.add(db_user)
        self.session.commit()
        self.session.refresh(db_user)
        logger.info(f"Staff user '{db_user.username}' created with role {db_user.role}")
        return db_user

    def update_user(self, username: str, user_update: UserUpdate) -> User:
        db_user = self.get_user_by_username(username)
        if not db_user:
            raise FileNotFoundError("User not found.")

        update_data = user_update.model_dump(exclude_unset=True)
        self._check_role(update_data.get("role"))

        if "disabled" in update_data:
            db_user.is_active = not update_data.pop("disabled")

        if update_data.get("password"):
            db_user.hashed_password = get_password_hash(update_data.pop("password"))
        update_data.pop("password", None)

        for key, value in update_data.items():
            setattr(db_user, key, value)

        self.session.add(db_user)
        self.session.commit()
        self.session.refresh(db_user)
        return db_user

    def delete_user(self, username: str):
        db_user = self.get_user_by_username(username)
        if not db_user:
            raise FileNotFoundError("User not found.")
        self.session.delete(db_user)
        self.session.commit()

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.username == username)).first()
