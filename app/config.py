"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"

MIN_RETRY_DELAY_SECONDS = 60


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./notifications.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    app_timezone: str = Field(
        default="UTC",
        description="IANA timezone (or UTC±HH:MM offset) used for persisted timestamps",
    )
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending notification emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of notification emails",
        min_length=3,
    )
    email_from_name: str | None = Field(
        default=None,
        description="Optional display name paired with the sender address",
    )
    firebase_project_id: str | None = Field(
        default=None,
        description="Firebase project identifier used by the push channel",
    )
    firebase_service_account_key: str | None = Field(
        default=None,
        description="Service account credentials as raw JSON or base64 encoded JSON",
    )
    outbox_retry_base_delay_seconds: int = Field(
        default=MIN_RETRY_DELAY_SECONDS,
        description="Base delay before a failed outbox entry is retried",
        ge=MIN_RETRY_DELAY_SECONDS,
    )
    outbox_retry_strategy: Literal["fixed", "exponential"] = Field(
        default="fixed",
        description="Whether the retry delay stays constant or doubles per attempt",
    )
    outbox_retry_max_delay_seconds: int = Field(
        default=3600,
        description="Upper bound applied to exponential retry delays",
        ge=MIN_RETRY_DELAY_SECONDS,
    )
    outbox_max_attempts: int = Field(
        default=5,
        description="Number of failed attempts after which an outbox entry is marked failed",
        gt=0,
    )
    outbox_batch_size: int = Field(
        default=25,
        description="Maximum number of outbox entries leased per worker cycle",
        gt=0,
    )
    outbox_poll_interval_seconds: float = Field(
        default=2.0,
        description="Seconds the worker sleeps between polling cycles",
        gt=0,
    )
    outbox_visibility_timeout_seconds: int = Field(
        default=300,
        description="Seconds after which a processing entry is considered abandoned",
        gt=0,
    )
    push_body_max_length: int = Field(
        default=120,
        description="Maximum length of push notification bodies",
        gt=1,
    )
    outbox_worker_embedded: bool = Field(
        default=False,
        description="Run the outbox worker inside the API process so realtime delivery can reach open websockets",
    )

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self

    @model_validator(mode="after")
    def _validate_firebase_pair(self) -> "Settings":
        if bool(self.firebase_project_id) ^ bool(self.firebase_service_account_key):
            raise ValueError(
                "FIREBASE_PROJECT_ID and FIREBASE_SERVICE_ACCOUNT_KEY must both be provided "
                "to enable push notifications"
            )
        return self

    @property
    def email_enabled(self) -> bool:
        return bool(self.sendgrid_api_key and self.sendgrid_sender)

    @property
    def push_enabled(self) -> bool:
        return bool(self.firebase_project_id and self.firebase_service_account_key)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache", "MIN_RETRY_DELAY_SECONDS"]
