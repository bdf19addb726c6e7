"""
Relay Exception Classes for Deadman Relay

Errors raised while authorizing and shaping inbound notification requests.
Each maps onto one HTTP status in the relay gate.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from exceptions.base import DeadmanRelayException


class TokenFailureKind(str, Enum):
    """Why a token could not be resolved to an authorization record."""

    NOT_FOUND = "not_found"
    STORE_UNAVAILABLE = "store_unavailable"
    MALFORMED = "malformed"
    CHANNEL_DENIED = "channel_denied"


class RelayException(DeadmanRelayException):
    """Parent class for relay request errors."""

    default_error_code = 5000


class Unauthorized(RelayException):
    """
    Unauthorized

    Raised for unknown or invalid tokens and for channels outside a token's
    pattern. The ``kind`` attribute tells callers which of these happened.
    """

    default_error_code = 5403

    def __init__(
        self,
        kind: TokenFailureKind,
        message: str = "Unauthorized",
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        self.kind = kind
        self.details["kind"] = kind.value


class BadRequest(RelayException):
    """
    Bad Request

    Raised when a request carries no content, or content that cannot be
    parsed for the requested format.
    """

    default_error_code = 5400

    def __init__(
        self,
        message: str = "No data found",
        format_name: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if format_name:
            self.details["format"] = format_name
