"""
============================================================================
DEADMAN RELAY - RELAY PACKAGE
============================================================================
Authenticated HTTP-to-chat notification relay:
    • TokenCache    — token → channel authorization, cached per token
    • RelayGate     — request authorization, payload shaping, delivery
    • RelayServer   — aiohttp front end

relay/
├── __init__.py          ← this file
├── tokens.py            ← TokenCache + AuthorizationRecord
├── gate.py              ← RelayGate + RelayRequest / RelayResponse
└── server.py            ← RelayServer + build_app
============================================================================
"""

from relay.tokens import AuthorizationRecord, TokenCache, TokenFile, TokenLookup
from relay.gate import RelayGate, RelayRequest, RelayResponse
from relay.server import RelayServer, build_app

__all__ = [
    # Tokens
    "AuthorizationRecord",
    "TokenCache",
    "TokenFile",
    "TokenLookup",

    # Gate
    "RelayGate",
    "RelayRequest",
    "RelayResponse",

    # Server
    "RelayServer",
    "build_app",
]
