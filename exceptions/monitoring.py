"""
Monitoring Exception Classes for Deadman Relay

Errors raised while evaluating dead-man triggers and delivering alerts.
"""

from __future__ import annotations

from typing import Any, Optional

from exceptions.base import DeadmanRelayException


class MonitoringException(DeadmanRelayException):
    """Parent class for monitoring errors."""

    default_error_code = 4000


class MissingPingError(MonitoringException):
    """
    Missing Ping Error

    Raised when a trigger has no ``ping`` marker, or the marker carries no
    modification timestamp.
    """

    default_error_code = 4001

    def __init__(self, trigger: str, **kwargs: Any) -> None:
        super().__init__(
            f"Ping file or lastmod not found for trigger: {trigger}",
            **kwargs
        )
        self.details["trigger"] = trigger


class DeliveryError(MonitoringException):
    """
    Delivery Error

    Raised when an alert cannot be delivered: the outbound credential is
    unset or the chat API reported a failure. Never retried.
    """

    default_error_code = 4100

    def __init__(
        self,
        message: str = "Failed to send notification",
        channel: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if channel:
            self.details["channel"] = channel
