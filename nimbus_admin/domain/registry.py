import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import select

from nimbus_admin.core.database import AppDatabase
from nimbus_admin.core.errors import ValidationError
from nimbus_admin.core.models import ConnectionProfile, epoch_ms

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "name", "host", "port", "username")


class ConnectionUpsert(BaseModel):
    """Incoming profile; required fields are checked by the registry, not the parser."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    created_at: Optional[int] = None


class ConnectionRegistry:
    def __init__(self, app_db: AppDatabase):
        self.app_db = app_db

    def list(self) -> List[ConnectionProfile]:
        with self.app_db.get_session() as session:
            return list(session.exec(
                select(ConnectionProfile).order_by(ConnectionProfile.created_at.desc())
            ).all())

    def get(self, profile_id: str) -> Optional[ConnectionProfile]:
        with self.app_db.get_session() as session:
            return session.get(ConnectionProfile, profile_id)

    def upsert(self, data: ConnectionUpsert) -> ConnectionProfile:
        """Insert or fully replace the profile keyed by id."""
        missing = [f for f in REQUIRED_FIELDS if not getattr(data, f)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        if not 0 < data.port < 65536:
            raise ValidationError("Port must be between 1 and 65535")

        profile = ConnectionProfile(
            id=data.id,
            name=data.name,
            host=data.host,
            port=data.port,
            username=data.username,
            password=data.password or "",
            created_at=data.created_at or epoch_ms(),
        )
        with self.app_db.get_session() as session:
            merged = session.merge(profile)
            session.commit()
            session.refresh(merged)
            logger.info("Connection profile '%s' saved (%s:%s)", merged.id, merged.host, merged.port)
            return merged

    def delete(self, profile_id: str):
        with self.app_db.get_session() as session:
            profile = session.get(ConnectionProfile, profile_id)
            if profile is not None:
                session.delete(profile)
                session.commit()
                logger.info("Connection profile '%s' deleted", profile_id)
