from datetime import timedelta
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from nimbus_admin.core.config import Settings
from nimbus_admin.core.database import AppDatabase
from nimbus_admin.core.security import PasswordHasher
from nimbus_admin.domain.credentials import CredentialStore, UserRead
from nimbus_admin.domain.gateway import CommandGateway
from nimbus_admin.domain.registry import ConnectionRegistry
from nimbus_admin.domain.sessions import SessionAuthenticator

# auto_error=False: a missing header must become our 401 {error}, not FastAPI's
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_app_db(request: Request) -> AppDatabase:
    return request.app.state.app_db


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_credential_store(
    app_db: AppDatabase = Depends(get_app_db),
    hasher: PasswordHasher = Depends(get_hasher),
) -> CredentialStore:
    return CredentialStore(app_db, hasher)


def get_authenticator(
    app_db: AppDatabase = Depends(get_app_db),
    credentials: CredentialStore = Depends(get_credential_store),
    settings: Settings = Depends(get_settings),
) -> SessionAuthenticator:
    return SessionAuthenticator(app_db, credentials, timedelta(minutes=settings.SESSION_TTL_MINUTES))


def get_registry(app_db: AppDatabase = Depends(get_app_db)) -> ConnectionRegistry:
    return ConnectionRegistry(app_db)


def get_gateway(
    request: Request,
    registry: ConnectionRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
) -> CommandGateway:
    return CommandGateway(
        registry,
        connect_timeout=settings.TARGET_CONNECT_TIMEOUT,
        query_timeout=settings.TARGET_QUERY_TIMEOUT,
        default_database=settings.TARGET_DEFAULT_DATABASE,
        metrics=request.app.state.metrics,
    )


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    authenticator: SessionAuthenticator = Depends(get_authenticator),
) -> UserRead:
    return authenticator.require(token)
