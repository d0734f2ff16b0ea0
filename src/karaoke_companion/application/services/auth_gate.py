"""Auth token gate: hands out valid bearer tokens and the signed-in user."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from ...domain.shared.exceptions import NotAuthenticatedError, SessionExpiredError
from ...domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...config.settings import AuthSettings
    from ..interfaces.auth import AuthTokens, TokenRefresher, TokenStore, User

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_BUFFER_SECONDS = 300


class AuthTokenGate:
    """Supplies non-expired tokens, refreshing them when needed.

    The hosted-session lifecycle never stores tokens; it asks the gate for
    them before every relay call.
    """

    def __init__(
        self,
        *,
        token_store: TokenStore,
        token_refresher: TokenRefresher,
        settings: AuthSettings | None = None,
    ) -> None:
        self._store = token_store
        self._refresher = token_refresher
        self._buffer = (
            settings.token_expiry_buffer_seconds if settings else DEFAULT_EXPIRY_BUFFER_SECONDS
        )
        self._user: User | None = None
        self._user_loaded = asyncio.Event()
        self._refresh_lock = asyncio.Lock()

    # === Tokens ===

    async def get_tokens(self) -> AuthTokens | None:
        return await self._store.load()

    def is_token_valid(self, tokens: AuthTokens, *, now: float | None = None) -> bool:
        """True while the token is more than the expiry buffer away from expiring."""
        current = time.time() if now is None else now
        return current < tokens.expires_at - self._buffer

    async def refresh_if_needed(self) -> AuthTokens | None:
        """Return valid tokens, refreshing first if they are about to expire.

        Returns None when there are no tokens or the refresh failed.
        """
        async with self._refresh_lock:
            tokens = await self._store.load()
            if tokens is None:
                return None
            if self.is_token_valid(tokens):
                return tokens

            try:
                refreshed = await self._refresher.refresh(tokens.refresh_token)
            except Exception as exc:
                logger.warning(LogTemplates.AUTH_REFRESH_FAILED, exc)
                return None

            await self._store.save(refreshed)
            logger.info(LogTemplates.AUTH_TOKENS_REFRESHED, refreshed.expires_at)
            return refreshed

    async def ensure_valid_tokens(self) -> AuthTokens:
        """Return valid tokens for an explicit user action.

        Raises:
            NotAuthenticatedError: If there are no stored tokens.
            SessionExpiredError: If the tokens expired and could not be refreshed.
        """
        tokens = await self.get_tokens()
        if tokens is None:
            raise NotAuthenticatedError()
        if self.is_token_valid(tokens):
            return tokens

        refreshed = await self.refresh_if_needed()
        if refreshed is None:
            raise SessionExpiredError()
        return refreshed

    # === User profile ===

    @property
    def current_user(self) -> User | None:
        return self._user

    def set_user(self, user: User) -> None:
        self._user = user
        self._user_loaded.set()

    def clear_user(self) -> None:
        self._user = None
        self._user_loaded.clear()

    async def sign_out(self) -> None:
        await self._store.clear()
        self.clear_user()

    async def wait_for_user(self, timeout: float) -> User | None:
        """Wait up to *timeout* seconds for the profile to load.

        Returns None on timeout instead of raising.
        """
        if self._user is not None:
            return self._user
        try:
            await asyncio.wait_for(self._user_loaded.wait(), timeout=timeout)
        except TimeoutError:
            logger.debug(LogTemplates.AUTH_USER_WAIT_TIMEOUT, timeout)
            return None
        return self._user
