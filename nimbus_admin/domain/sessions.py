import logging
from datetime import timedelta
from typing import Optional

from pydantic import BaseModel
from sqlmodel import select

from nimbus_admin.core.database import AppDatabase
from nimbus_admin.core.errors import AuthError
from nimbus_admin.core.models import User, UserSession, utcnow
from nimbus_admin.core.security import new_session_token
from nimbus_admin.domain.credentials import CredentialStore, UserRead

logger = logging.getLogger(__name__)


class LoginResult(BaseModel):
    token: str
    user: UserRead


class SessionAuthenticator:
    """
    Opaque bearer tokens backed by the sessions table.
    Expiry is checked on every validation and never extended.
    """
    def __init__(self, app_db: AppDatabase, credentials: CredentialStore, ttl: timedelta):
        self.app_db = app_db
        self.credentials = credentials
        self.ttl = ttl

    def login(self, username: str, password: str) -> LoginResult:
        user = self.credentials.validate_user(username, password)
        if user is None:
            logger.info("Login failed for '%s'", username)
            raise AuthError("Invalid username or password")

        self.purge_expired()
        token = new_session_token()
        with self.app_db.get_session() as session:
            session.add(UserSession(token=token, user_id=user.id, expires_at=utcnow() + self.ttl))
            session.commit()
        logger.info("Login succeeded for '%s'", username)
        return LoginResult(token=token, user=user)

    def validate(self, token: Optional[str]) -> Optional[UserRead]:
        if not token:
            return None
        with self.app_db.get_session() as session:
            user = session.exec(
                select(User)
                .join(UserSession, UserSession.user_id == User.id)
                .where(UserSession.token == token, UserSession.expires_at > utcnow())
            ).first()
            return UserRead.from_row(user) if user else None

    def require(self, token: Optional[str]) -> UserRead:
        user = self.validate(token)
        if user is None:
            raise AuthError("Unauthorized")
        return user

    def logout(self, token: str):
        with self.app_db.get_session() as session:
            row = session.get(UserSession, token)
            if row is not None:
                session.delete(row)
                session.commit()

    def purge_expired(self) -> int:
        with self.app_db.get_session() as session:
            expired = session.exec(select(UserSession).where(UserSession.expires_at <= utcnow())).all()
            for row in expired:
                session.delete(row)
            session.commit()
            return len(expired)
