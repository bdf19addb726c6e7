"""
Configuration Package for Deadman Relay

This package contains all configuration-related modules including:
- Settings management with environment variable support
- Constants and enums used throughout the application
"""

from config.settings import (
    Settings,
    StoreSettings,
    TelegramSettings,
    DeadManSettings,
    RelaySettings,
    LoggingSettings,
    get_settings,
)

from config.constants import (
    StoreLayout,
    RelayFormat,
    TriggerOutcome,
    RelayPaths,
    HTTPStatus,
    Defaults,
)

__all__ = [
    # Settings
    "Settings",
    "StoreSettings",
    "TelegramSettings",
    "DeadManSettings",
    "RelaySettings",
    "LoggingSettings",
    "get_settings",

    # Constants
    "StoreLayout",
    "RelayFormat",
    "TriggerOutcome",
    "RelayPaths",
    "HTTPStatus",
    "Defaults",
]
