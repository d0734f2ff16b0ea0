"""httpx-based refresh-token exchange."""

from __future__ import annotations

import logging
import time

import httpx
from pydantic import BaseModel, Field

from karaoke_companion.application.interfaces.auth import AuthTokens, TokenRefresher
from karaoke_companion.config.settings import AuthSettings
from karaoke_companion.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

FALLBACK_EXPIRY_SECONDS: int = 3600


class RefreshResponse(BaseModel):
    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    expires_at: int | None = None
    expires_in: int | None = None

    def to_tokens(self, now: int) -> AuthTokens:
        if self.expires_at is not None:
            expires_at = self.expires_at
        elif self.expires_in is not None:
            expires_at = now + self.expires_in
        else:
            logger.warning(LogTemplates.AUTH_EXPIRY_FALLBACK, FALLBACK_EXPIRY_SECONDS)
            expires_at = now + FALLBACK_EXPIRY_SECONDS

        return AuthTokens(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=expires_at,
        )


class HttpTokenRefresher(TokenRefresher):
    """Exchanges a refresh token at the identity provider's token endpoint."""

    def __init__(
        self,
        settings: AuthSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AuthSettings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.request_timeout_s,
                transport=self._transport,
            )
        return self._client

    async def refresh(self, refresh_token: str) -> AuthTokens:
        if not refresh_token or not refresh_token.strip():
            raise ValueError(ErrorMessages.EMPTY_REFRESH_TOKEN)

        headers: dict[str, str] = {}
        api_key = self._settings.api_key.get_secret_value()
        if api_key:
            headers["apikey"] = api_key

        try:
            response = await self._get_client().post(
                self._settings.refresh_url,
                params={"grant_type": "refresh_token"},
                json={"refresh_token": refresh_token},
                headers=headers,
            )
            response.raise_for_status()
            data = RefreshResponse.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as e:
            raise RuntimeError(ErrorMessages.TOKEN_REFRESH_FAILED.format(detail=e)) from e

        return data.to_tokens(int(time.time()))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
