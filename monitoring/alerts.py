"""
============================================================================
DEADMAN RELAY - ALERT SINK
============================================================================
Delivers human-readable alerts to the operator's Telegram chat.

Content Model
-------------
Alert content is a tagged union:

    TextContent(text)          → sent as-is
    StructuredContent(value)   → sent as a fenced ```json block of the
                                 2-space indented serialization

Every message is prefixed with ``<source>@<channel>:`` so the operator
can tell which token or trigger produced it.

Delivery
--------
TelegramAlertSink sends through aiogram's Bot. A missing credential or
any Bot API failure raises DeliveryError. There is no retry; the caller
decides what a failed delivery means.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Union

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.utils.token import TokenValidationError

from config.constants import Defaults
from config.settings import TelegramSettings
from exceptions.monitoring import DeliveryError
from utils.helpers import StringHelper
from utils.logger import get_logger


logger = get_logger("AlertSink")


# ============================================================================
# ALERT CONTENT
# ============================================================================

@dataclass(frozen=True)
class TextContent:
    """Plain (markdown) text."""
    text: str


@dataclass(frozen=True)
class StructuredContent:
    """Any JSON-serializable value."""
    value: Any


AlertContent = Union[TextContent, StructuredContent]


def render_alert_message(
    source: Optional[str],
    channel: Optional[str],
    content: AlertContent,
) -> str:
    """
    Build the chat message for an alert.

    Args:
        source: Who sent it (token display name or the dead-man operator)
        channel: Target channel or trigger name
        content: Text or structured content

    Returns:
        Message text
    """
    message = f"{source or Defaults.UNKNOWN_LABEL}@{channel or Defaults.UNKNOWN_LABEL}:\n"

    if isinstance(content, TextContent):
        return message + content.text
    if isinstance(content, StructuredContent):
        serialized = json.dumps(content.value, indent=2, ensure_ascii=False)
        return message + "```json\n" + serialized + "\n```"

    raise TypeError(f"Unsupported alert content: {type(content).__name__}")


# ============================================================================
# SINK INTERFACE
# ============================================================================

class AlertSink(ABC):
    """Anything that can deliver an alert to the operator."""

    @abstractmethod
    async def notify(
        self,
        source: Optional[str],
        channel: Optional[str],
        content: AlertContent,
        silent: bool = False,
    ) -> None:
        """Deliver one alert. Raises DeliveryError on failure."""

    async def close(self) -> None:
        """Release transport resources. No-op by default."""


# ============================================================================
# TELEGRAM SINK
# ============================================================================

class TelegramAlertSink(AlertSink):
    """
    Sends alerts to a single Telegram chat.

    Parameters
    ----------
    settings : TelegramSettings
        Credential, chat id and parse mode.
    bot : aiogram.Bot | None
        Pre-built Bot. When None, one is created on first use from the
        configured token, so a missing token only fails the send.
    """

    def __init__(self, settings: TelegramSettings, bot: Optional[Bot] = None):
        self.settings = settings
        self._bot = bot

    def _get_bot(self, channel: Optional[str]) -> Bot:
        if self._bot is not None:
            return self._bot

        token = self.settings.token.get_secret_value() if self.settings.token else ""
        if not token:
            raise DeliveryError("Telegram token not set", channel=channel)

        try:
            self._bot = Bot(token=token)
        except TokenValidationError as e:
            raise DeliveryError("Telegram token is invalid", channel=channel, cause=e) from e
        return self._bot

    async def notify(
        self,
        source: Optional[str],
        channel: Optional[str],
        content: AlertContent,
        silent: bool = False,
    ) -> None:
        text = render_alert_message(source, channel, content)
        bot = self._get_bot(channel)

        try:
            await bot.send_message(
                chat_id=self.settings.chat_id,
                text=text,
                parse_mode=self.settings.parse_mode,
                disable_notification=silent,
                request_timeout=self.settings.request_timeout,
            )
        except TelegramAPIError as e:
            logger.error(f"Telegram rejected alert for {channel}: {e}")
            raise DeliveryError(channel=channel, cause=e) from e

        logger.info(
            f"✓ Alert sent: {source}@{channel}"
            f"{' (silent)' if silent else ''}: {StringHelper.truncate(text.replace(chr(10), ' '), 80)}"
        )

    async def close(self) -> None:
        if self._bot is not None:
            await self._bot.session.close()
            self._bot = None
