# peermatch/core/config.py
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # Queue backend
    QUEUE_BACKEND: Literal["memory", "redis"] = "memory"
    REDIS_URL: str = "redis://localhost:6379/0"
    QUEUE_KEY_PREFIX: str = "peermatch:queue"
    REDIS_SOCKET_TIMEOUT: float = 5.0

    # Queue maintenance
    QUEUE_SWEEP_INTERVAL_SECONDS: float = Field(default=5.0, gt=0)
    QUEUE_RETENTION_SECONDS: float = Field(default=3600.0, ge=0)

    # Collaborator I/O budget for one match attempt
    COLLABORATOR_TIMEOUT_SECONDS: float = Field(default=3.0, gt=0)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
