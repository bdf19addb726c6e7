"""
Settings Module for Deadman Relay

Configuration management using Pydantic Settings.
Supports environment variables, .env files, and runtime configuration.
The share tokens and the Telegram credential are also accepted under the
variable names used by existing deployments (DEADMAN_SWITCH_TOKEN,
NTFY_WEBDAV_TOKEN, GUPPI_TELEGRAM_TOKEN).
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment enumeration."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class BaseSettingsConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
        populate_by_name=True
    )


class StoreSettings(BaseSettingsConfig):
    """
    Remote Store Configuration Settings

    Both the dead-man triggers and the relay tokens live on the same WebDAV
    server, each behind its own public share token (used as the username,
    with an empty password).
    """

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        env_file=".env",
        extra="ignore"
    )

    base_url: str = Field(
        default="https://cloud.tionis.dev/public.php/webdav",
        description="WebDAV endpoint of the share"
    )
    deadman_token: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("STORE_DEADMAN_TOKEN", "DEADMAN_SWITCH_TOKEN"),
        description="Share token of the dead-man trigger store"
    )
    relay_token: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("STORE_RELAY_TOKEN", "NTFY_WEBDAV_TOKEN"),
        description="Share token of the relay token store"
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout for a single store request in seconds"
    )
    lock_timeout: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Lifetime requested for exclusive locks in seconds"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the endpoint so paths can be joined with a single '/'."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v.rstrip("/")


class TelegramSettings(BaseSettingsConfig):
    """
    Telegram Alert Delivery Settings

    The token is optional at startup; delivery fails with DeliveryError
    when it is missing.
    """

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=".env",
        extra="ignore"
    )

    token: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("TELEGRAM_TOKEN", "GUPPI_TELEGRAM_TOKEN"),
        description="Telegram Bot API token"
    )
    chat_id: int = Field(
        default=248533143,
        description="Chat that receives every alert"
    )
    parse_mode: str = Field(
        default="Markdown",
        description="Message parse mode (Markdown, MarkdownV2, HTML)"
    )
    request_timeout: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Timeout for a sendMessage call in seconds"
    )


class DeadManSettings(BaseSettingsConfig):
    """
    Dead-Man Switch Settings

    Controls how often the trigger sweep runs and how long a single trigger
    may take before it is abandoned.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEADMAN_",
        env_file=".env",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Run the periodic trigger sweep"
    )
    check_interval: int = Field(
        default=300,  # 5 minutes
        ge=10,
        le=86400,
        description="Seconds between trigger sweeps"
    )
    trigger_timeout: float = Field(
        default=120.0,
        gt=0,
        le=3600,
        description="Upper bound for evaluating a single trigger in seconds"
    )
    source_name: str = Field(
        default="deadManSwitchOperator",
        min_length=1,
        description="Source label attached to dead-man alerts"
    )
    run_on_startup: bool = Field(
        default=True,
        description="Run one sweep immediately when the service starts"
    )


class RelaySettings(BaseSettingsConfig):
    """
    Notification Relay Settings
    """

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=".env",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Serve the inbound notification relay"
    )
    host: str = Field(
        default="0.0.0.0",
        description="Bind address"
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Bind port"
    )
    token_validity: int = Field(
        default=60,  # 1 minute
        ge=1,
        le=86400,
        description="Seconds a cached token lookup stays valid"
    )
    public_token: str = Field(
        default="public",
        min_length=1,
        description="Token used when a request carries none"
    )


class LoggingSettings(BaseSettingsConfig):
    """
    Logging Configuration Settings
    """

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore"
    )

    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Minimum logging level"
    )
    console_enabled: bool = Field(
        default=True,
        description="Enable console logging"
    )
    console_colored: bool = Field(
        default=True,
        description="Enable colored console output"
    )
    file_enabled: bool = Field(
        default=False,
        description="Enable file logging"
    )
    file_path: Path = Field(
        default=Path("logs/deadman_relay.log"),
        description="Log file path"
    )
    file_rotation: str = Field(
        default="10 MB",
        description="Log rotation size (e.g., '10 MB', '1 day')"
    )
    file_retention: str = Field(
        default="30 days",
        description="Log retention period"
    )
    error_file_path: Path = Field(
        default=Path("logs/errors.log"),
        description="Error log file path (only used with file logging)"
    )


class Settings(BaseSettingsConfig):
    """
    Main Settings Class

    Aggregates all settings sections and provides the main
    configuration interface for the application.
    """

    environment: Environment = Field(
        default=Environment.PRODUCTION,
        description="Application environment"
    )
    app_name: str = Field(
        default="Deadman Relay",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )

    store: StoreSettings = Field(default_factory=StoreSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    deadman: DeadManSettings = Field(default_factory=DeadManSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def to_dict(self, *, exclude_secrets: bool = True) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        data = self.model_dump()

        if exclude_secrets:
            def remove_secrets(obj: Any) -> Any:
                if isinstance(obj, dict):
                    return {
                        k: remove_secrets(v)
                        for k, v in obj.items()
                        if "token" not in k.lower()
                        and "secret" not in k.lower()
                    }
                return obj

            data = remove_secrets(data)

        return data


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
