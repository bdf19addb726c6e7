# Shared test doubles for the store, the alert sink and the clocks.
# They let evaluator, token cache and gate tests run without a WebDAV server or Telegram.
# The in-memory store mimics the WebDAV adapter: modification times, exclusive locks, 404s.
# Failure injection is per path so a single trigger can be broken in isolation.

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Set

from exceptions.monitoring import DeliveryError
from exceptions.store import LockError, ResourceNotFoundError, StoreError
from monitoring.alerts import AlertContent, AlertSink, TextContent
from storage.base import MarkerStore, StoreEntry


START = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable wall clock returning timezone-aware instants."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeMonotonic:
    """Settable monotonic seconds source."""

    def __init__(self, value: float = 1000.0) -> None:
        self.value = value

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class InMemoryStore(MarkerStore):
    """Dictionary-backed MarkerStore with WebDAV-like semantics."""

    def __init__(self, clock: Optional[FakeClock] = None) -> None:
        self.clock = clock or FakeClock()
        self.files: Dict[str, bytes] = {}
        self.modified: Dict[str, datetime] = {}
        self.directories: Set[str] = set()
        self.locks: Dict[str, str] = {}

        self.reads: List[str] = []
        self.writes: List[str] = []
        self.released: List[str] = []

        self.fail_reads: Set[str] = set()
        self.fail_writes: Set[str] = set()
        self.fail_lists: Set[str] = set()
        self.read_delay = 0.0

    # -- setup helpers ---------------------------------------------------

    def put(self, path: str, data: Any = b"", modified_at: Optional[datetime] = None) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.files[path] = data
        self.modified[path] = modified_at or self.clock()
        parts = path.split("/")
        for i in range(1, len(parts)):
            self.directories.add("/".join(parts[:i]))

    def make_dir(self, path: str) -> None:
        self.directories.add(path)

    def text(self, path: str) -> str:
        return self.files[path].decode("utf-8")

    # -- MarkerStore -----------------------------------------------------

    async def list_entries(self, path: str) -> List[StoreEntry]:
        path = path.strip("/")
        if path in self.fail_lists:
            raise StoreError("listing failed", path=path, status_code=500)
        if path and path not in self.directories:
            raise ResourceNotFoundError(path)

        prefix = f"{path}/" if path else ""
        children: Dict[str, StoreEntry] = {}
        for directory in self.directories:
            if directory.startswith(prefix) and "/" not in directory[len(prefix):]:
                name = directory[len(prefix):]
                children[name] = StoreEntry(name=name, is_directory=True)
        for file_path, modified_at in self.modified.items():
            if file_path.startswith(prefix) and "/" not in file_path[len(prefix):]:
                name = file_path[len(prefix):]
                children[name] = StoreEntry(name=name, is_directory=False, modified_at=modified_at)
        return list(children.values())

    async def read_resource(self, path: str) -> bytes:
        self.reads.append(path)
        if self.read_delay:
            await asyncio.sleep(self.read_delay)
        if path in self.fail_reads:
            raise StoreError("read failed", path=path, status_code=500)
        if path not in self.files:
            raise ResourceNotFoundError(path)
        return self.files[path]

    async def write_resource(self, path: str, data: bytes, lock_token: Optional[str] = None) -> None:
        if path in self.fail_writes:
            raise StoreError("write failed", path=path, status_code=507)
        held = self.locks.get(path)
        if held is not None and held != lock_token:
            raise LockError("resource is locked", path=path, status_code=423)
        self.writes.append(path)
        self.put(path, data)

    async def acquire_lock(self, path: str) -> str:
        if path in self.locks:
            raise LockError("already locked", path=path, status_code=423)
        token = f"opaquelocktoken:{uuid.uuid4()}"
        self.locks[path] = token
        return token

    async def release_lock(self, path: str, token: str) -> None:
        if self.locks.get(path) != token:
            raise LockError("not the lock holder", path=path, status_code=409)
        del self.locks[path]
        self.released.append(path)


@dataclass
class SentAlert:
    source: Optional[str]
    channel: Optional[str]
    content: AlertContent
    silent: bool

    @property
    def text(self) -> str:
        assert isinstance(self.content, TextContent)
        return self.content.text


@dataclass
class RecordingAlertSink(AlertSink):
    """Collects alerts instead of sending them; can be told to fail."""

    sent: List[SentAlert] = field(default_factory=list)
    fail: bool = False
    closed: bool = False

    async def notify(
        self,
        source: Optional[str],
        channel: Optional[str],
        content: AlertContent,
        silent: bool = False,
    ) -> None:
        if self.fail:
            raise DeliveryError("chat API unavailable", channel=channel)
        self.sent.append(SentAlert(source, channel, content, silent))

    async def close(self) -> None:
        self.closed = True
