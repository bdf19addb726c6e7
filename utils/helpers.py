"""
============================================================================
DEADMAN RELAY - HELPERS UTILITY
============================================================================
Time and string helpers shared by the store adapter, the evaluator and the
relay.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Optional


# ============================================================================
# TIME UTILITIES
# ============================================================================

class TimeHelper:
    """
    Time and date manipulation utilities.
    """

    @staticmethod
    def get_utc_now() -> datetime:
        """Get current timezone-aware UTC datetime."""
        return datetime.now(timezone.utc)

    @staticmethod
    def format_http_date(dt: datetime) -> str:
        """
        Format a datetime the way HTTP and WebDAV do.

        Args:
            dt: Datetime to format (naive values are taken as UTC)

        Returns:
            String such as "Tue, 08 Oct 2024 00:18:15 GMT"
        """
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return format_datetime(dt.astimezone(timezone.utc), usegmt=True)

    @staticmethod
    def parse_http_date(value: Optional[str]) -> Optional[datetime]:
        """
        Parse an HTTP / WebDAV ``getlastmodified`` value.

        Args:
            value: String such as "Tue, 08 Oct 2024 00:18:15 GMT"

        Returns:
            Timezone-aware datetime or None if parsing fails
        """
        if not value:
            return None
        try:
            dt = parsedate_to_datetime(value.strip())
        except (TypeError, ValueError):
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    @staticmethod
    def seconds_to_human_readable(seconds: int) -> str:
        """
        Convert seconds to human-readable format.

        Args:
            seconds: Number of seconds

        Returns:
            Human-readable string (e.g., "2h 30m 15s")
        """
        if seconds < 0:
            return "0s"

        days, remainder = divmod(seconds, 86400)
        hours, remainder = divmod(remainder, 3600)
        minutes, secs = divmod(remainder, 60)

        parts = []
        if days > 0:
            parts.append(f"{days}d")
        if hours > 0:
            parts.append(f"{hours}h")
        if minutes > 0:
            parts.append(f"{minutes}m")
        if secs > 0 or not parts:
            parts.append(f"{secs}s")

        return " ".join(parts)


# ============================================================================
# STRING UTILITIES
# ============================================================================

class StringHelper:
    """
    String manipulation utilities.
    """

    @staticmethod
    def truncate(text: str, max_length: int = 100, suffix: str = "...") -> str:
        """
        Truncate text to maximum length.

        Args:
            text: Text to truncate
            max_length: Maximum length
            suffix: Suffix to add if truncated

        Returns:
            Truncated text
        """
        if len(text) <= max_length:
            return text
        return text[:max_length - len(suffix)] + suffix

    @staticmethod
    def mask_secret(secret: str, visible: int = 4) -> str:
        """Mask all but the first ``visible`` characters of a token for logs."""
        if len(secret) <= visible:
            return "*" * len(secret)
        return secret[:visible] + "*" * (len(secret) - visible)
