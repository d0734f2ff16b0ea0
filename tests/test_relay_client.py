"""
Tests for HttpHostedSessionApi

Requests are served by httpx.MockTransport so no network is used.
"""

import json

import httpx
import pytest

from karaoke_companion.config.settings import RelaySettings
from karaoke_companion.domain.session.entities import HostedSessionStatus
from karaoke_companion.domain.shared.exceptions import RelayApiError, RelayFailureKind
from karaoke_companion.infrastructure.relay.hosted_session_client import HttpHostedSessionApi

API_URL = "https://relay.example.com"


def _client(handler) -> HttpHostedSessionApi:
    settings = RelaySettings(
        api_url=API_URL,
        join_base_url="https://join.example.com/",
        qr_code_base_url="https://qr.example.com/v1/create-qr-code",
    )
    return HttpHostedSessionApi(settings, transport=httpx.MockTransport(handler))


class TestUrlHelpers:
    def test_join_url(self):
        api = HttpHostedSessionApi(RelaySettings(join_base_url="https://join.example.com/"))
        assert api.build_join_url("ABCD") == "https://join.example.com/join/ABCD"

    def test_qr_code_url_encodes_data(self):
        api = HttpHostedSessionApi(
            RelaySettings(qr_code_base_url="https://qr.example.com/v1/create-qr-code")
        )

        url = api.build_qr_code_url("https://join.example.com/join/ABCD")

        assert url == (
            "https://qr.example.com/v1/create-qr-code/?size=200x200"
            "&data=https%3A%2F%2Fjoin.example.com%2Fjoin%2FABCD"
        )


class TestCreate:
    """Tests for POST /api/session/create."""

    @pytest.mark.asyncio
    async def test_create_sends_bearer_and_name(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "session_id": "hosted-1",
                    "session_code": "ABCD",
                    "expires_at": "2024-05-02T04:00:00Z",
                },
            )

        api = _client(handler)
        hosted = await api.create("access-1", "Friday")
        await api.close()

        assert seen == {
            "method": "POST",
            "path": "/api/session/create",
            "auth": "Bearer access-1",
            "body": {"name": "Friday"},
        }
        assert hosted.id == "hosted-1"
        assert hosted.join_code == "ABCD"
        assert hosted.join_url == "https://join.example.com/join/ABCD"
        assert hosted.qr_code_url.startswith("https://qr.example.com/v1/create-qr-code/?size=200x200")
        assert hosted.status is HostedSessionStatus.ACTIVE
        assert hosted.expires_at is not None and hosted.expires_at.hour == 4

    @pytest.mark.asyncio
    async def test_create_prefers_relay_urls(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "session_id": "hosted-1",
                    "session_code": "ABCD",
                    "join_url": "https://relay.example.com/j/ABCD",
                    "qr_code_url": "https://relay.example.com/qr/ABCD.png",
                },
            )

        api = _client(handler)
        hosted = await api.create("access-1")
        await api.close()

        assert hosted.join_url == "https://relay.example.com/j/ABCD"
        assert hosted.qr_code_url == "https://relay.example.com/qr/ABCD.png"
        assert hosted.expires_at is None

    @pytest.mark.asyncio
    async def test_create_without_name_sends_empty_object(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"session_id": "h", "session_code": "C"})

        api = _client(handler)
        await api.create("access-1")
        await api.close()

        assert bodies == [{}]

    @pytest.mark.asyncio
    async def test_create_requires_token(self):
        api = _client(lambda request: httpx.Response(200))

        with pytest.raises(ValueError):
            await api.create("")


class TestGet:
    """Tests for GET /api/session/{id}."""

    @pytest.mark.asyncio
    async def test_get_parses_status_and_stats(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/session/hosted-1"
            return httpx.Response(
                200,
                json={
                    "id": "hosted-1",
                    "session_code": "ABCD",
                    "status": "paused",
                    "stats": {"pending_requests": 2, "approved_requests": 5, "total_guests": 7},
                },
            )

        api = _client(handler)
        hosted = await api.get("access-1", "hosted-1")
        await api.close()

        assert hosted.status is HostedSessionStatus.PAUSED
        assert hosted.stats.pending_requests == 2
        assert hosted.stats.approved_requests == 5
        assert hosted.stats.total_guests == 7
        assert hosted.join_url == "https://join.example.com/join/ABCD"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (404, RelayFailureKind.NOT_FOUND),
            (401, RelayFailureKind.UNAUTHORIZED),
            (403, RelayFailureKind.FORBIDDEN),
            (503, RelayFailureKind.TRANSIENT),
        ],
    )
    async def test_http_errors_carry_status(self, status, kind):
        api = _client(lambda request: httpx.Response(status, text="nope"))

        with pytest.raises(RelayApiError) as exc_info:
            await api.get("access-1", "hosted-1")
        await api.close()

        assert exc_info.value.status_code == status
        assert exc_info.value.failure_kind is kind

    @pytest.mark.asyncio
    async def test_network_error_has_no_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        api = _client(handler)

        with pytest.raises(RelayApiError) as exc_info:
            await api.get("access-1", "hosted-1")
        await api.close()

        assert exc_info.value.status_code is None
        assert exc_info.value.failure_kind is RelayFailureKind.TRANSIENT

    @pytest.mark.asyncio
    async def test_invalid_json_is_transient(self):
        api = _client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(RelayApiError) as exc_info:
            await api.get("access-1", "hosted-1")
        await api.close()

        assert exc_info.value.failure_kind is RelayFailureKind.TRANSIENT

    @pytest.mark.asyncio
    async def test_unexpected_shape_is_transient(self):
        api = _client(lambda request: httpx.Response(200, json={"id": "hosted-1"}))

        with pytest.raises(RelayApiError) as exc_info:
            await api.get("access-1", "hosted-1")
        await api.close()

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_get_requires_id(self):
        api = _client(lambda request: httpx.Response(200))

        with pytest.raises(ValueError):
            await api.get("access-1", " ")


class TestEnd:
    @pytest.mark.asyncio
    async def test_end_sends_delete(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            return httpx.Response(204)

        api = _client(handler)
        await api.end("access-1", "hosted-1")
        await api.close()

        assert seen == [("DELETE", "/api/session/hosted-1")]

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        api = _client(lambda request: httpx.Response(204))
        await api.end("access-1", "hosted-1")

        await api.close()
        await api.close()
