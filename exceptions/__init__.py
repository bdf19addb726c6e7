"""
Exceptions Package for Deadman Relay

Provides the exception hierarchy for error handling
throughout the application.
"""

from exceptions.base import (
    DeadmanRelayException,
    ConfigError,
)

from exceptions.store import (
    StoreError,
    ResourceNotFoundError,
    LockError,
)

from exceptions.monitoring import (
    MonitoringException,
    MissingPingError,
    DeliveryError,
)

from exceptions.relay import (
    TokenFailureKind,
    RelayException,
    Unauthorized,
    BadRequest,
)

__all__ = [
    # Base exceptions
    "DeadmanRelayException",
    "ConfigError",

    # Store exceptions
    "StoreError",
    "ResourceNotFoundError",
    "LockError",

    # Monitoring exceptions
    "MonitoringException",
    "MissingPingError",
    "DeliveryError",

    # Relay exceptions
    "TokenFailureKind",
    "RelayException",
    "Unauthorized",
    "BadRequest",
]
