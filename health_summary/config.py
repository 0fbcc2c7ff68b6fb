from __future__ import annotations
from dotenv import load_dotenv, find_dotenv; load_dotenv(find_dotenv(usecwd=True), override=True)

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # General
    TZ: str = Field(default="Europe/Paris", description="Timezone that defines 'today'")

    # Metrics API
    BASE_URL: Optional[str] = Field(default=None, description="Metrics API base URL")
    API_KEY: Optional[str] = Field(
        default=None,
        description="Sent as X-API-KEY",
        validation_alias=AliasChoices("API_KEY", "X_API_KEY"),
    )
    SUBMIT_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)

    # Health data source
    QUERY_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0, description="Upper bound per health query")
    HEALTH_EXPORT_PATH: Optional[str] = Field(default=None, description="Apple Health export.xml")
    HEALTH_EXPORT_SOURCES: Optional[str] = Field(
        default=None,
        description="Comma-separated sourceName values to count, e.g. \"Apple Watch\" (default: all)",
    )


def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


def load_settings(settings: Optional[Settings] = None) -> Settings:
    """Settings with the submission credentials checked; raises ConfigurationError."""
    settings = settings or get_settings()
    missing = [name for name in ("BASE_URL", "API_KEY") if not (getattr(settings, name) or "").strip()]
    if missing:
        raise ConfigurationError(f"Missing required setting(s): {', '.join(missing)}")
    if not settings.BASE_URL.startswith(("http://", "https://")):  # type: ignore[union-attr]
        raise ConfigurationError(f"BASE_URL must be an http(s) URL, got {settings.BASE_URL!r}")
    return settings
