import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from nimbus_admin.core.database import AppDatabase
from nimbus_admin.core.errors import ConflictError, NotFoundError, ValidationError
from nimbus_admin.core.models import User, UserSession
from nimbus_admin.core.security import PasswordHasher

logger = logging.getLogger(__name__)


class UserRead(BaseModel):
    """Public view of a user. Never carries password material."""
    id: int
    username: str
    created_at: datetime

    @classmethod
    def from_row(cls, user: User) -> "UserRead":
        return cls(id=user.id, username=user.username, created_at=user.created_at)


class CredentialStore:
    """
    User accounts with salted PBKDF2 password hashes.
    Pure data access: callers decide what a failure means.
    """
    def __init__(self, app_db: AppDatabase, hasher: PasswordHasher):
        self.app_db = app_db
        self.hasher = hasher

    def create_user(self, username: str, password: str) -> UserRead:
        if not username or not password:
            raise ValidationError("Missing fields")

        with self.app_db.get_session() as session:
            existing = session.exec(select(User).where(User.username == username)).first()
            if existing:
                raise ConflictError("Username already exists")

            salt = self.hasher.new_salt()
            user = User(
                username=username,
                password_hash=self.hasher.hash(password, salt),
                salt=salt,
            )
            session.add(user)
            try:
                session.commit()
            except IntegrityError:
                # Lost a race with a concurrent insert of the same name
                session.rollback()
                raise ConflictError("Username already exists")
            session.refresh(user)
            return UserRead.from_row(user)

    def validate_user(self, username: str, password: str) -> Optional[UserRead]:
        with self.app_db.get_session() as session:
            user = session.exec(select(User).where(User.username == username)).first()
            if user is None:
                self.hasher.dummy_verify()
                return None
            if not self.hasher.verify(password, user.password_hash):
                return None
            return UserRead.from_row(user)

    def get_user(self, user_id: int) -> Optional[UserRead]:
        with self.app_db.get_session() as session:
            user = session.get(User, user_id)
            return UserRead.from_row(user) if user else None

    def update_user(self, user_id: int, username: str, password: Optional[str] = None):
        if not username:
            raise ValidationError("Missing username")

        with self.app_db.get_session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found")

            clash = session.exec(
                select(User).where(User.username == username, User.id != user_id)
            ).first()
            if clash:
                raise ConflictError("Username already exists")

            user.username = username
            if password:
                # Fresh salt on every password change
                user.salt = self.hasher.new_salt()
                user.password_hash = self.hasher.hash(password, user.salt)
            session.add(user)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ConflictError("Username already exists")

    def delete_user(self, user_id: int):
        with self.app_db.get_session() as session:
            for row in session.exec(select(UserSession).where(UserSession.user_id == user_id)).all():
                session.delete(row)
            user = session.get(User, user_id)
            if user is not None:
                session.delete(user)
            session.commit()

            remaining = session.exec(select(func.count()).select_from(User)).one()
            if remaining == 0:
                logger.warning("Last user account deleted (id=%s); no one can log in until a user is created.", user_id)

    def list_users(self) -> List[UserRead]:
        with self.app_db.get_session() as session:
            users = session.exec(
                select(User).order_by(User.created_at.desc(), User.id.desc())
            ).all()
            return [UserRead.from_row(u) for u in users]

    def count_users(self) -> int:
        with self.app_db.get_session() as session:
            return session.exec(select(func.count()).select_from(User)).one()

    def bootstrap(self, username: str, password: str) -> bool:
        """Create the default account if the store is empty."""
        if self.count_users() > 0:
            return False
        logger.warning("No users found, creating default account '%s'. Rotate its password.", username)
        self.create_user(username, password)
        return True
