"""In-process token store."""

from __future__ import annotations

import asyncio

from karaoke_companion.application.interfaces.auth import AuthTokens, TokenStore


class InMemoryTokenStore(TokenStore):
    """Keeps the token set for the lifetime of the process.

    Desktop builds back this port with the OS keychain; headless runs and
    tests use this one.
    """

    def __init__(self, tokens: AuthTokens | None = None) -> None:
        self._tokens = tokens
        self._lock = asyncio.Lock()

    async def load(self) -> AuthTokens | None:
        async with self._lock:
            return self._tokens

    async def save(self, tokens: AuthTokens) -> None:
        async with self._lock:
            self._tokens = tokens

    async def clear(self) -> None:
        async with self._lock:
            self._tokens = None
