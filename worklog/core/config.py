"""Environment-driven configuration for the Worklog service.

Every setting is read once, when this module is first imported, from the
process environment or from ``.env`` / ``.env.local``. Importing ``settings``
anywhere gives you the same cached instance.
"""

from __future__ import annotations

from datetime import time
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Worklog"
    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")
    MEDIA_DIR: Path | None = None
    TZ: str = "Europe/Riga"
    LOG_LEVEL: str = "INFO"

    # Standard working window; anything outside counts as overtime.
    BASE_HOURS_START: time = time(9, 0)
    BASE_HOURS_END: time = time(18, 0)
    WORKDAY_PROJECT_LABEL: str = "Workday"
    MAX_TASK_IMAGES: int = 5

    API_KEY: str = Field(default="", validation_alias=AliasChoices("API_KEY", "API_TOKEN"))
    JWT_SECRET: str = "change-me"
    JWT_ACCESS_TTL_MIN: int = 15
    JWT_REFRESH_TTL_DAYS: int = 7
    ALLOWED_ORIGINS: Annotated[list[str], NoDecode] = Field(default_factory=list)

    DB_URL: str | None = Field(default=None, validation_alias=AliasChoices("DATABASE_URL", "DB_URL"))

    HOST: str = "0.0.0.0"
    PORT: int = 8089

    @property
    def media_dir(self) -> Path:
        return self.MEDIA_DIR if self.MEDIA_DIR is not None else self.DATA_DIR / "task-images"

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'worklog.db'}"

    @field_validator("BASE_HOURS_START", "BASE_HOURS_END", mode="before")
    @classmethod
    def parse_clock(cls, value: Any) -> Any:
        if isinstance(value, int):
            return time(value, 0)
        if isinstance(value, str) and value.strip().isdigit():
            return time(int(value.strip()), 0)
        return value

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    if settings.BASE_HOURS_END <= settings.BASE_HOURS_START:
        raise ValueError("BASE_HOURS_END must be later than BASE_HOURS_START")
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings


settings = get_settings()
