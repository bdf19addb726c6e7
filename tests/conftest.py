"""
Shared test configuration.
Provides the in-memory store, recording sink and clocks used across the suite.
These tests are executed by `pytest` locally and in CI and should remain deterministic.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from config.settings import DeadManSettings, get_settings  # noqa: E402
from tests.support import FakeClock, FakeMonotonic, InMemoryStore, RecordingAlertSink  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep real credentials out of tests and reset the settings cache."""

    for name in ("DEADMAN_SWITCH_TOKEN", "NTFY_WEBDAV_TOKEN", "GUPPI_TELEGRAM_TOKEN", "TELEGRAM_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryStore:
    return InMemoryStore(clock)


@pytest.fixture
def sink() -> RecordingAlertSink:
    return RecordingAlertSink()


@pytest.fixture
def deadman_settings() -> DeadManSettings:
    return DeadManSettings(trigger_timeout=5.0)
