from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings

MIB = 1024 * 1024


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300
    DB_OP_TIMEOUT_SECONDS: float = 10.0
    DB_CREATE_SCHEMA: bool = True

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PUBSUB_CHANNEL: str = "relay.fanout"
    FANOUT_ENABLED: bool = False

    GCS_BUCKET: str = ""
    GCS_CREDENTIALS_FILE: str | None = None
    BLOB_PUBLIC_BASE_URL: str = "https://storage.googleapis.com"

    IMAGE_MAX_BYTES: int = 5 * MIB
    VIDEO_MAX_BYTES: int = 30 * MIB
    UPLOAD_TIMEOUT_SECONDS: float = 60.0
    UPLOAD_CHUNK_SIZE: int = MIB

    HISTORY_LIMIT: int = 100
    HISTORY_MAX_LIMIT: int = 100

    DELIVERY_POLICY: Literal["best_effort", "durable_first"] = "best_effort"

    WS_HEARTBEAT_SECONDS: int = 30
    WS_SEND_TIMEOUT_SECONDS: float = 5.0

    CORS_ORIGINS: list[str] = ["*"]

    HOST: str = "0.0.0.0"
    PORT: int = 10000
    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
