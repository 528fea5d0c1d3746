from enum import Enum
from typing import Literal

from fastapi import Depends
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TRIGGER_CODE = "change-me"

_ASYNC_SCHEMES = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
}


class RunnerIdleMode(str, Enum):
    DRAIN = "drain"
    FOREVER = "forever"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Job Queue", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment")
    debug: bool = Field(default=True, description="Debug mode")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )

    # Server
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./jobqueue.db",
        description="Database connection URL",
    )
    db_echo: bool = Field(default=False, description="Echo SQL statements")
    db_pool_size: int = Field(default=10, description="Database connection pool size")
    db_max_overflow: int = Field(default=20, description="Database max overflow connections")
    db_pool_timeout: int = Field(default=30, description="Database pool timeout in seconds")
    db_pool_recycle: int = Field(default=3600, description="Database connection recycle time in seconds")

    # Job runner
    max_concurrent_jobs: int = Field(
        default=4, ge=1, description="Maximum number of jobs running at once"
    )
    poll_interval_ms: int = Field(
        default=3000, ge=0, description="Wait before each fetch of pending jobs"
    )
    batch_size: int = Field(
        default=4, ge=1, description="Pending jobs fetched per loop iteration"
    )
    runner_idle_mode: RunnerIdleMode = Field(
        default=RunnerIdleMode.DRAIN,
        description="drain: stop on an empty batch, forever: keep polling",
    )
    job_timeout_s: float | None = Field(
        default=None, gt=0, description="Per-job handler timeout, unset means none"
    )
    strict_registry: bool = Field(
        default=False, description="Reject a second handler registered for a kind"
    )

    # Producers
    trigger_code: str = Field(
        default=DEFAULT_TRIGGER_CODE, description="Code required by /jobs/trigger/all"
    )

    # Handlers
    fetch_timeout_s: float = Field(
        default=10.0, gt=0, description="HTTP timeout for the fetch_json handler"
    )
    job_cleanup_after_days: int = Field(
        default=30, ge=0, description="Age of finished jobs removed by maintenance"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @field_validator("database_url")
    @classmethod
    def _use_async_driver(cls, value: str) -> str:
        """Map driverless URLs onto the async drivers the engine needs."""
        for scheme, async_scheme in _ASYNC_SCHEMES.items():
            if value.startswith(f"{scheme}://"):
                return async_scheme + value[len(scheme):]
        return value

    @model_validator(mode="after")
    def _check_production(self) -> "Settings":
        if self.environment == "production" and self.trigger_code == DEFAULT_TRIGGER_CODE:
            raise ValueError(
                "TRIGGER_CODE must be set in production environment. "
                "The default trigger code is only meant for development."
            )
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()


def get_settings() -> Settings:
    """Settings dependency; the app factory overrides it with its own settings."""
    return settings


SettingsDep = Depends(get_settings)
