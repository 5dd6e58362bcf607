from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    全局配置类。
    Read from NIMBUS_* environment variables first, then from .env.
    """
    model_config = SettingsConfigDict(
        env_prefix="NIMBUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App database (users, sessions, connection profiles)
    APP_DB_URL: str = Field(default="sqlite:///./nimbus_admin.db")

    # Security
    SESSION_TTL_MINUTES: int = Field(default=60 * 24)  # 1 Day
    PASSWORD_HASH_ROUNDS: int = Field(default=100_000)
    DEFAULT_ADMIN_USERNAME: str = Field(default="admin")
    DEFAULT_ADMIN_PASSWORD: str = Field(default="admin")

    # Target engine transport
    TARGET_CONNECT_TIMEOUT: int = Field(default=5)
    TARGET_QUERY_TIMEOUT: int = Field(default=300)
    TARGET_DEFAULT_DATABASE: str = Field(default="information_schema")

    # HTTP
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)
    CORS_ORIGINS: List[str] = Field(default=["*"])
    ENABLE_RATE_LIMIT: bool = Field(default=False)
    RATE_LIMIT_WINDOW: int = Field(default=60)
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=10)

    # Observability
    LOG_LEVEL: str = Field(default="INFO")
    ENABLE_METRICS: bool = Field(default=False)
    OTLP_ENDPOINT: str = Field(default="")


settings = Settings()
