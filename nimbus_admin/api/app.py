import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nimbus_admin.api.middleware.rate_limit import LoginRateLimitMiddleware
from nimbus_admin.api.routes import auth, connections, nimbus, query, users
from nimbus_admin.core.config import Settings, settings as default_settings
from nimbus_admin.core.database import AppDatabase
from nimbus_admin.core.errors import NimbusError
from nimbus_admin.core.logging import setup_logging
from nimbus_admin.core.metrics import GatewayMetrics, init_metrics
from nimbus_admin.core.security import PasswordHasher
from nimbus_admin.domain.credentials import CredentialStore

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Nimbus admin gateway...")
        app_db = AppDatabase(settings.APP_DB_URL)
        app_db.init_metadata_tables()
        hasher = PasswordHasher(settings.PASSWORD_HASH_ROUNDS)
        CredentialStore(app_db, hasher).bootstrap(
            settings.DEFAULT_ADMIN_USERNAME, settings.DEFAULT_ADMIN_PASSWORD
        )

        init_metrics(settings.ENABLE_METRICS, settings.OTLP_ENDPOINT)
        app.state.settings = settings
        app.state.app_db = app_db
        app.state.hasher = hasher
        app.state.metrics = GatewayMetrics()
        try:
            yield
        finally:
            app_db.dispose()

    app = FastAPI(title="Nimbus Admin Gateway", lifespan=lifespan)

    @app.exception_handler(NimbusError)
    async def nimbus_error_handler(request: Request, exc: NimbusError):
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err["loc"][1:]) for err in exc.errors()]
        logger.info("Validation error for %s: %s", request.url.path, fields)
        return JSONResponse(
            status_code=400,
            content={"error": "Missing or invalid fields", "fields": fields},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})

    # CORS Configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        LoginRateLimitMiddleware,
        path=f"{API_PREFIX}/auth/login",
        window=settings.RATE_LIMIT_WINDOW,
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        enabled=settings.ENABLE_RATE_LIMIT,
    )

    # Include Routers
    app.include_router(auth.router, prefix=API_PREFIX)
    app.include_router(users.router, prefix=API_PREFIX)
    app.include_router(connections.router, prefix=API_PREFIX)
    app.include_router(query.router, prefix=API_PREFIX)
    app.include_router(nimbus.router, prefix=API_PREFIX)

    return app


def main():
    import uvicorn

    setup_logging(default_settings.LOG_LEVEL)
    uvicorn.run(create_app(), host=default_settings.HOST, port=default_settings.PORT)


if __name__ == "__main__":
    main()
