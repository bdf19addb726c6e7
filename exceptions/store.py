"""
Store Exception Classes for Deadman Relay

Errors raised by the remote store adapter: transport failures, missing
resources and lock conflicts.
"""

from __future__ import annotations

from typing import Any, Optional

from exceptions.base import DeadmanRelayException


class StoreError(DeadmanRelayException):
    """
    Base Store Exception

    Raised when the remote store cannot be reached or answers with an
    unexpected status.
    """

    default_error_code = 2000

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        """
        Initialize store exception.

        Args:
            message: Error message
            path: Store path involved in the failing call
            status_code: HTTP status returned by the store, if any
            **kwargs: Additional arguments
        """
        super().__init__(message, **kwargs)

        self.path = path
        self.status_code = status_code

        if path:
            self.details["path"] = path

        if status_code is not None:
            self.details["status_code"] = status_code


class ResourceNotFoundError(StoreError):
    """The requested resource does not exist."""

    default_error_code = 2001

    def __init__(self, path: str, **kwargs: Any) -> None:
        super().__init__(f"Resource not found: {path}", path=path, status_code=404, **kwargs)


class LockError(StoreError):
    """
    Lock Error

    Raised when an exclusive lock cannot be acquired or released.
    """

    default_error_code = 2002
