"""
Constants for Deadman Relay

Store layout names, relay formats and other fixed values shared across
the application.
"""

from enum import Enum


class StoreLayout:
    """Resource names inside the remote store."""

    CONFIG_FILE = "config.yaml"
    PING_MARKER = "ping"
    LAST_NOTIFICATION_MARKER = "lastNotification"
    ERROR_LOG = "error.log"
    TOKENS_DIR = "tokens"
    TOKEN_SUFFIX = ".yaml"

    @classmethod
    def trigger_path(cls, trigger: str, resource: str) -> str:
        return f"{trigger}/{resource}"

    @classmethod
    def token_path(cls, token: str) -> str:
        return f"{cls.TOKENS_DIR}/{token}{cls.TOKEN_SUFFIX}"


class RelayFormat(str, Enum):
    """Payload formats accepted by the relay."""

    JSON = "json"
    APPRISE_JSON = "apprise_json"
    MARKDOWN = "markdown"

    @classmethod
    def parse(cls, value: str | None) -> "RelayFormat":
        """Map a ``format`` query value to a format; unknown values mean markdown."""
        if value == cls.JSON.value:
            return cls.JSON
        if value == cls.APPRISE_JSON.value:
            return cls.APPRISE_JSON
        return cls.MARKDOWN


class TriggerOutcome(str, Enum):
    """Result of evaluating one trigger during a sweep."""

    HEALTHY = "healthy"
    FIRED = "fired"
    SUPPRESSED = "suppressed"
    FAILED = "failed"


class RelayPaths:
    HEALTHZ = "/healthz"


class HTTPStatus:
    OK = 200
    BAD_REQUEST = 400
    FORBIDDEN = 403
    BAD_GATEWAY = 502


class Defaults:
    """Fallback labels used when rendering alerts."""

    UNKNOWN_LABEL = "unknown"
    NO_TITLE = "no title"
    NO_TYPE = "no type"
