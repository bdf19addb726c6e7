"""
============================================================================
DEADMAN RELAY - TOKEN CACHE
============================================================================
Maps opaque bearer tokens to the channels they may post to.

Each token is described by ``tokens/<token>.yaml`` in the relay store:

    channelRegex: "^alerts-.*"
    name: "backup-server"

Cache Semantics
---------------
Every lookup result, positive or negative, is cached for a fixed window
(RELAY_TOKEN_VALIDITY, 1 minute by default) measured from the moment it
was loaded. Within the window the store is never contacted again for that
token; after it, the next lookup re-fetches and replaces the entry
wholesale. Entries are never evicted proactively.

Entries are immutable, so concurrent request handlers can share the map
without locking. Concurrent lookups of the same cold or expired token
share a single in-flight load.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import re
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Pattern

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config.constants import StoreLayout
from exceptions.relay import TokenFailureKind, Unauthorized
from exceptions.store import ResourceNotFoundError, StoreError
from storage.base import MarkerStore
from utils.helpers import StringHelper
from utils.logger import get_logger


logger = get_logger("TokenCache")

_FORBIDDEN_TOKEN_CHARS = re.compile(r"[/\\\x00-\x1f]")


# ============================================================================
# RECORDS
# ============================================================================

class TokenFile(BaseModel):
    """Schema of ``tokens/<token>.yaml``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    channel_regex: str = Field(alias="channelRegex")
    name: Optional[str] = None


@dataclass(frozen=True)
class AuthorizationRecord:
    """What a token is allowed to do and how its alerts are labelled."""

    channel_pattern: Pattern[str]
    display_name: Optional[str]

    def allows(self, channel: str) -> bool:
        return self.channel_pattern.search(channel) is not None


@dataclass(frozen=True)
class TokenLookup:
    """Tagged lookup result: either a record or the reason there is none."""

    record: Optional[AuthorizationRecord] = None
    failure: Optional[TokenFailureKind] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class CacheEntry:
    lookup: TokenLookup
    valid_until: float


# ============================================================================
# CACHE
# ============================================================================

class TokenCache:
    """
    Process-wide token cache, created once at startup and handed to the
    relay gate.

    Parameters
    ----------
    store : MarkerStore
        The relay token store.
    validity_seconds : float
        Lifetime of every cache entry.
    clock : Callable[[], float]
        Monotonic seconds source.
    """

    def __init__(
        self,
        store: MarkerStore,
        validity_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.validity_seconds = validity_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._pending: Dict[str, "asyncio.Task[TokenLookup]"] = {}

    async def resolve_token(self, token: str) -> AuthorizationRecord:
        """
        Return the authorization record for ``token``.

        Raises:
            Unauthorized: no valid record exists (``kind`` says why)
        """
        lookup = await self.lookup(token)
        if lookup.record is None:
            raise Unauthorized(lookup.failure or TokenFailureKind.NOT_FOUND, "Token not found")
        return lookup.record

    async def lookup(self, token: str) -> TokenLookup:
        """Return the cached lookup for ``token``, loading it when missing or expired."""
        now = self._clock()
        cached = self._entries.get(token)
        if cached is not None and cached.valid_until > now:
            return cached.lookup

        task = self._pending.get(token)
        if task is None:
            task = asyncio.ensure_future(self._refresh(token))
            self._pending[token] = task
            task.add_done_callback(lambda done: self._forget_pending(token, done))
        # A cancelled request must not cancel the load other requests wait on.
        return await asyncio.shield(task)

    async def _refresh(self, token: str) -> TokenLookup:
        lookup = await self._load(token)
        self._entries[token] = CacheEntry(lookup=lookup, valid_until=self._clock() + self.validity_seconds)
        return lookup

    def _forget_pending(self, token: str, task: "asyncio.Task[TokenLookup]") -> None:
        if self._pending.get(token) is task:
            del self._pending[token]

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # LOADING
    # ------------------------------------------------------------------

    async def _load(self, token: str) -> TokenLookup:
        masked = StringHelper.mask_secret(token)

        if not token or token.startswith(".") or _FORBIDDEN_TOKEN_CHARS.search(token):
            logger.warning(f"Rejected malformed token {masked}")
            return TokenLookup(failure=TokenFailureKind.MALFORMED)

        try:
            raw = await self.store.read_resource(StoreLayout.token_path(token))
        except ResourceNotFoundError:
            logger.info(f"Unknown token {masked}")
            return TokenLookup(failure=TokenFailureKind.NOT_FOUND)
        except StoreError as e:
            logger.error(f"Token store unavailable while loading {masked}: {e}")
            return TokenLookup(failure=TokenFailureKind.STORE_UNAVAILABLE)

        try:
            record = self._parse(raw)
        except (yaml.YAMLError, ValidationError, re.error, TypeError, UnicodeDecodeError) as e:
            logger.error(f"Token file for {masked} is malformed: {e}")
            return TokenLookup(failure=TokenFailureKind.MALFORMED)

        logger.debug(f"Loaded token {masked} ({record.display_name})")
        return TokenLookup(record=record)

    @staticmethod
    def _parse(raw: bytes) -> AuthorizationRecord:
        data = yaml.safe_load(raw.decode("utf-8"))
        if not isinstance(data, dict):
            raise TypeError("token file must be a mapping")
        token_file = TokenFile.model_validate(data)
        return AuthorizationRecord(
            channel_pattern=re.compile(token_file.channel_regex),
            display_name=token_file.name,
        )
