"""
============================================================================
DEADMAN RELAY - MARKER STORE INTERFACE
============================================================================
The narrow interface through which the evaluator and the token cache talk
to the remote hierarchical store.

Implementations provide five primitives (list, read, write, lock, unlock).
The base class builds the scoped ``locked()`` context manager and the
locked ``append_text()`` on top of them, so the lock is released on every
path, including when the append itself fails.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, List, Optional

from exceptions.store import ResourceNotFoundError
from utils.logger import get_logger


logger = get_logger("Store")


@dataclass(frozen=True)
class StoreEntry:
    """One child of a listed directory."""

    name: str
    is_directory: bool
    modified_at: Optional[datetime] = None


class MarkerStore(ABC):
    """
    Abstract remote store.

    Paths are relative to the store root and use '/' as separator.
    ``read_resource`` raises ResourceNotFoundError for missing resources;
    every other failure surfaces as StoreError.
    """

    @abstractmethod
    async def list_entries(self, path: str) -> List[StoreEntry]:
        """List the direct children of ``path``."""

    @abstractmethod
    async def read_resource(self, path: str) -> bytes:
        """Return the content of ``path``."""

    @abstractmethod
    async def write_resource(
        self, path: str, data: bytes, lock_token: Optional[str] = None
    ) -> None:
        """Create or replace ``path``; ``lock_token`` proves ownership of a held lock."""

    @abstractmethod
    async def acquire_lock(self, path: str) -> str:
        """Take an exclusive lock on ``path`` and return its token."""

    @abstractmethod
    async def release_lock(self, path: str, token: str) -> None:
        """Release a lock previously returned by ``acquire_lock``."""

    async def close(self) -> None:
        """Release transport resources. No-op by default."""

    # ------------------------------------------------------------------
    # COMPOSED OPERATIONS
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def locked(self, path: str) -> AsyncIterator[str]:
        """
        Hold an exclusive lock on ``path`` for the duration of the block.

        Yields the lock token. The lock is released even when the block
        raises; a failed release is logged and does not mask the original
        error.
        """
        token = await self.acquire_lock(path)
        try:
            yield token
        finally:
            try:
                await self.release_lock(path, token)
            except Exception as e:
                logger.error(f"Failed to release lock on {path}: {e}")

    async def read_text(self, path: str, default: Optional[str] = None) -> str:
        """
        Read ``path`` as UTF-8 text.

        Args:
            path: Resource path
            default: Returned when the resource does not exist; when None,
                ResourceNotFoundError propagates

        Returns:
            Decoded content
        """
        try:
            data = await self.read_resource(path)
        except ResourceNotFoundError:
            if default is None:
                raise
            return default
        return data.decode("utf-8", errors="replace")

    async def append_text(self, path: str, text: str) -> None:
        """
        Append ``text`` to ``path`` under an exclusive lock.

        A missing resource is treated as empty.
        """
        async with self.locked(path) as token:
            existing = await self.read_text(path, default="")
            await self.write_resource(path, (existing + text).encode("utf-8"), lock_token=token)
