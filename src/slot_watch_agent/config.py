"""Configuration objects and helpers for the slot watch agent."""

from __future__ import annotations

from typing import Optional

from pydantic import Field, HttpUrl, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import MissingCredentialsError


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables."""

    report_url: Optional[HttpUrl] = Field(None, alias="SLOT_WATCH_REPORT_URL")
    alerts_url: Optional[HttpUrl] = Field(None, alias="SLOT_WATCH_ALERTS_URL")
    report_token: Optional[SecretStr] = Field(None, alias="SLOT_WATCH_REPORT_TOKEN")
    report_timeout_seconds: float = Field(15.0, alias="SLOT_WATCH_REPORT_TIMEOUT_SECONDS")
    headless: bool = Field(True, alias="SLOT_WATCH_HEADLESS")
    navigation_timeout_seconds: int = Field(60, ge=1, alias="SLOT_WATCH_NAVIGATION_TIMEOUT_SECONDS")
    action_timeout_seconds: int = Field(5, ge=1, alias="SLOT_WATCH_ACTION_TIMEOUT_SECONDS")
    probe_timeout_ms: int = Field(500, ge=0, alias="SLOT_WATCH_PROBE_TIMEOUT_MS")
    max_attempts: int = Field(3, ge=1, alias="SLOT_WATCH_MAX_ATTEMPTS")
    retry_backoff_seconds: float = Field(5.0, ge=0, alias="SLOT_WATCH_RETRY_BACKOFF_SECONDS")
    retry_blocked: bool = Field(True, alias="SLOT_WATCH_RETRY_BLOCKED")
    calendar_max_steps: int = Field(12, ge=0, alias="SLOT_WATCH_CALENDAR_MAX_STEPS")
    environment: str = Field("production", alias="SLOT_WATCH_ENVIRONMENT")

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def navigation_timeout_ms(self) -> int:
        return self.navigation_timeout_seconds * 1000

    @property
    def action_timeout_ms(self) -> int:
        return self.action_timeout_seconds * 1000

    def require_report_token(self) -> str:
        """Return the bearer credential, failing before any scrape when absent."""
        if self.report_token is None or not self.report_token.get_secret_value().strip():
            raise MissingCredentialsError("SLOT_WATCH_REPORT_TOKEN is required to report results")
        return self.report_token.get_secret_value()

    def auth_headers(self) -> dict[str, str]:
        """Bearer authorization header for the reporting boundary."""
        return {"Authorization": f"Bearer {self.require_report_token()}"}
