"""
Auth Interfaces

Ports for token storage and refresh, plus the token and user models the
auth token gate hands out.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict

from ...domain.shared.types import NonEmptyStr, UnixSeconds


class AuthTokens(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: NonEmptyStr
    refresh_token: NonEmptyStr
    expires_at: UnixSeconds
    """Seconds since the epoch."""


class User(BaseModel):
    """The signed-in user's profile."""

    model_config = ConfigDict(frozen=True)

    id: NonEmptyStr
    email: str | None = None
    display_name: str | None = None


class TokenStore(ABC):
    """Secure storage for the current token set (keychain, memory, ...)."""

    @abstractmethod
    async def load(self) -> AuthTokens | None:
        ...

    @abstractmethod
    async def save(self, tokens: AuthTokens) -> None:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...


class TokenRefresher(ABC):
    """Exchanges a refresh token for a new token set."""

    @abstractmethod
    async def refresh(self, refresh_token: str) -> AuthTokens:
        """Refresh the session.

        Raises:
            Exception: Any failure; callers treat every error as "refresh failed".
        """
        ...

    async def close(self) -> None:
        return None
