from __future__ import annotations

import os
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

REPORT_GROUPINGS = ("day", "week", "month")


class BaseAppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "CRM Revenue"
    ENV: str = "dev"
    DATABASE_URL: str | None = None
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"  # plain | json

    # Recurring schedules are projected this many months ahead unless the
    # caller caps the number of cycles explicitly.
    RECURRING_HORIZON_MONTHS: int = 12
    REPORT_DEFAULT_GROUP_BY: str = "month"

    @field_validator("REPORT_DEFAULT_GROUP_BY", mode="before")
    @classmethod
    def normalize_group_by(cls, v):
        """Accept any casing for the bucketing hint."""
        value = "month" if v is None else str(v).strip().lower()
        if value not in REPORT_GROUPINGS:
            raise ValueError(f"REPORT_DEFAULT_GROUP_BY must be one of {REPORT_GROUPINGS}, got {v!r}")
        return value

    @model_validator(mode="after")
    def _check_database_and_horizon(self) -> BaseAppSettings:
        # SQLAlchemy 2 rejects the postgres:// scheme
        if self.DATABASE_URL and self.DATABASE_URL.startswith("postgres://"):
            self.DATABASE_URL = "postgresql://" + self.DATABASE_URL[len("postgres://"):]

        if self.RECURRING_HORIZON_MONTHS < 0:
            raise ValueError("RECURRING_HORIZON_MONTHS cannot be negative")

        if self.ENV.lower() in ("prod", "production") and not self.DATABASE_URL:
            raise ValueError("DATABASE_URL is required in production")
        return self


class DevSettings(BaseAppSettings):
    DATABASE_URL: str = "sqlite:///./storage/dev.db"


class TestSettings(BaseAppSettings):
    ENV: str = "test"
    DATABASE_URL: str = "sqlite:///:memory:"


class ProdSettings(BaseAppSettings):
    ENV: str = "prod"
    LOG_FORMAT: str = "json"


_SETTINGS_BY_ENV: dict[str, type[BaseAppSettings]] = {
    "dev": DevSettings,
    "development": DevSettings,
    "local": DevSettings,
    "test": TestSettings,
    "testing": TestSettings,
    "prod": ProdSettings,
    "production": ProdSettings,
}


@lru_cache
def get_settings() -> BaseAppSettings:
    env = (os.getenv("APP_ENV") or os.getenv("ENV") or "dev").strip().lower()
    return _SETTINGS_BY_ENV.get(env, DevSettings)()


settings = get_settings()
