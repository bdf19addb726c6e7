"""
============================================================================
DEADMAN RELAY - STORAGE PACKAGE
============================================================================
Remote marker store access.

storage/
├── __init__.py          ← this file
├── base.py              ← MarkerStore interface + scoped locking helpers
└── webdav.py            ← WebDAV implementation over httpx
============================================================================
"""

from storage.base import MarkerStore, StoreEntry
from storage.webdav import WebDAVStore

__all__ = [
    "MarkerStore",
    "StoreEntry",
    "WebDAVStore",
]
