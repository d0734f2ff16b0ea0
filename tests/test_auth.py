"""
Tests for auth token handling

Tests for:
- AuthTokenGate validity, refresh and user waiting
- InMemoryTokenStore
- HttpTokenRefresher against a mocked transport
"""

import asyncio
import json
import time
from unittest.mock import AsyncMock

import httpx
import pytest
from pydantic import SecretStr

from karaoke_companion.application.interfaces.auth import AuthTokens, User
from karaoke_companion.application.services.auth_gate import AuthTokenGate
from karaoke_companion.config.settings import AuthSettings
from karaoke_companion.domain.shared.exceptions import NotAuthenticatedError, SessionExpiredError
from karaoke_companion.infrastructure.auth.token_refresher import (
    FALLBACK_EXPIRY_SECONDS,
    HttpTokenRefresher,
    RefreshResponse,
)
from karaoke_companion.infrastructure.auth.token_store import InMemoryTokenStore

REFRESH_URL = "https://auth.example.com/auth/v1/token"


def _tokens(expires_in: int, access: str = "access-1") -> AuthTokens:
    return AuthTokens(
        access_token=access,
        refresh_token="refresh-1",
        expires_at=int(time.time()) + expires_in,
    )


@pytest.fixture
def refresher():
    refresher = AsyncMock()
    refresher.refresh.return_value = _tokens(3600, access="access-2")
    return refresher


def _gate(store, refresher, buffer=300):
    return AuthTokenGate(
        token_store=store,
        token_refresher=refresher,
        settings=AuthSettings(token_expiry_buffer_seconds=buffer),
    )


# =============================================================================
# AuthTokenGate
# =============================================================================


class TestTokenValidity:
    """Tests for the expiry buffer."""

    def test_valid_outside_buffer(self, refresher):
        gate = _gate(InMemoryTokenStore(), refresher)
        tokens = AuthTokens(access_token="a", refresh_token="r", expires_at=10_000)

        assert gate.is_token_valid(tokens, now=10_000 - 301) is True
        assert gate.is_token_valid(tokens, now=10_000 - 300) is False
        assert gate.is_token_valid(tokens, now=10_001) is False

    def test_zero_buffer(self, refresher):
        gate = _gate(InMemoryTokenStore(), refresher, buffer=0)
        tokens = AuthTokens(access_token="a", refresh_token="r", expires_at=100)

        assert gate.is_token_valid(tokens, now=99) is True


class TestRefresh:
    """Tests for refresh_if_needed / ensure_valid_tokens."""

    @pytest.mark.asyncio
    async def test_valid_tokens_not_refreshed(self, refresher):
        tokens = _tokens(3600)
        gate = _gate(InMemoryTokenStore(tokens), refresher)

        assert await gate.refresh_if_needed() == tokens
        refresher.refresh.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expiring_tokens_refreshed_and_saved(self, refresher):
        store = InMemoryTokenStore(_tokens(60))
        gate = _gate(store, refresher)

        refreshed = await gate.refresh_if_needed()

        assert refreshed.access_token == "access-2"
        assert await store.load() == refreshed
        refresher.refresh.assert_awaited_once_with("refresh-1")

    @pytest.mark.asyncio
    async def test_no_tokens(self, refresher):
        gate = _gate(InMemoryTokenStore(), refresher)

        assert await gate.refresh_if_needed() is None
        with pytest.raises(NotAuthenticatedError):
            await gate.ensure_valid_tokens()

    @pytest.mark.asyncio
    async def test_refresh_failure(self, refresher):
        refresher.refresh.side_effect = RuntimeError("revoked")
        gate = _gate(InMemoryTokenStore(_tokens(-10)), refresher)

        assert await gate.refresh_if_needed() is None
        with pytest.raises(SessionExpiredError):
            await gate.ensure_valid_tokens()

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_share_one_call(self, refresher):
        gate = _gate(InMemoryTokenStore(_tokens(10)), refresher)

        results = await asyncio.gather(*(gate.refresh_if_needed() for _ in range(3)))

        assert refresher.refresh.await_count == 1
        assert {r.access_token for r in results} == {"access-2"}


class TestUser:
    """Tests for the signed-in user profile."""

    @pytest.mark.asyncio
    async def test_wait_for_user_times_out(self, refresher):
        gate = _gate(InMemoryTokenStore(), refresher)
        assert await gate.wait_for_user(0.01) is None

    @pytest.mark.asyncio
    async def test_wait_for_user_resolves_when_set(self, refresher):
        gate = _gate(InMemoryTokenStore(), refresher)
        user = User(id="user-1")

        async def load_later():
            await asyncio.sleep(0.01)
            gate.set_user(user)

        task = asyncio.create_task(load_later())
        assert await gate.wait_for_user(1.0) == user
        await task

    @pytest.mark.asyncio
    async def test_sign_out_clears_everything(self, refresher):
        store = InMemoryTokenStore(_tokens(3600))
        gate = _gate(store, refresher)
        gate.set_user(User(id="user-1"))

        await gate.sign_out()

        assert gate.current_user is None
        assert await store.load() is None


# =============================================================================
# InMemoryTokenStore
# =============================================================================


class TestInMemoryTokenStore:
    @pytest.mark.asyncio
    async def test_save_load_clear(self):
        store = InMemoryTokenStore()
        tokens = _tokens(3600)

        assert await store.load() is None
        await store.save(tokens)
        assert await store.load() == tokens
        await store.clear()
        assert await store.load() is None


# =============================================================================
# HttpTokenRefresher
# =============================================================================


class TestRefreshResponse:
    def test_expires_at_wins(self):
        data = RefreshResponse(access_token="a", refresh_token="r", expires_at=500, expires_in=10)
        assert data.to_tokens(now=100).expires_at == 500

    def test_expires_in_relative_to_now(self):
        data = RefreshResponse(access_token="a", refresh_token="r", expires_in=60)
        assert data.to_tokens(now=100).expires_at == 160

    def test_missing_expiry_uses_fallback(self):
        data = RefreshResponse(access_token="a", refresh_token="r")
        assert data.to_tokens(now=100).expires_at == 100 + FALLBACK_EXPIRY_SECONDS


class TestHttpTokenRefresher:
    """Tests for the HTTP refresh exchange."""

    @pytest.mark.asyncio
    async def test_refresh_posts_refresh_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["apikey"] = request.headers.get("apikey")
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"access_token": "new-a", "refresh_token": "new-r", "expires_in": 3600},
            )

        refresher = HttpTokenRefresher(
            AuthSettings(refresh_url=REFRESH_URL, api_key=SecretStr("anon-key")),
            transport=httpx.MockTransport(handler),
        )

        tokens = await refresher.refresh("old-r")
        await refresher.close()

        assert tokens.access_token == "new-a"
        assert tokens.refresh_token == "new-r"
        assert tokens.expires_at >= int(time.time()) + 3500
        assert seen["url"] == f"{REFRESH_URL}?grant_type=refresh_token"
        assert seen["apikey"] == "anon-key"
        assert seen["body"] == {"refresh_token": "old-r"}

    @pytest.mark.asyncio
    async def test_http_error_becomes_runtime_error(self):
        refresher = HttpTokenRefresher(
            AuthSettings(refresh_url=REFRESH_URL),
            transport=httpx.MockTransport(lambda request: httpx.Response(400, json={})),
        )

        with pytest.raises(RuntimeError):
            await refresher.refresh("old-r")
        await refresher.close()

    @pytest.mark.asyncio
    async def test_malformed_body_becomes_runtime_error(self):
        refresher = HttpTokenRefresher(
            AuthSettings(refresh_url=REFRESH_URL),
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"access_token": "only"})
            ),
        )

        with pytest.raises(RuntimeError):
            await refresher.refresh("old-r")
        await refresher.close()

    @pytest.mark.asyncio
    async def test_empty_refresh_token_rejected(self):
        refresher = HttpTokenRefresher(AuthSettings(refresh_url=REFRESH_URL))

        with pytest.raises(ValueError):
            await refresher.refresh("  ")
