"""httpx client for the owner-side hosted-session relay endpoints."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from karaoke_companion.application.interfaces.hosted_session_api import HostedSessionApi
from karaoke_companion.config.settings import RelaySettings
from karaoke_companion.domain.session.entities import (
    HostedSession,
    HostedSessionStatus,
    SessionStats,
)
from karaoke_companion.domain.shared.constants import RelayEndpoints
from karaoke_companion.domain.shared.datetime_utils import UtcDateTime
from karaoke_companion.domain.shared.exceptions import RelayApiError
from karaoke_companion.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

QR_CODE_SIZE: int = 200

ModelT = TypeVar("ModelT", bound=BaseModel)


class CreateSessionResponse(BaseModel):
    session_id: str = Field(..., min_length=1)
    session_code: str = Field(..., min_length=1)
    qr_code_url: str | None = None
    join_url: str | None = None
    expires_at: str | None = None


class SessionStatsResponse(BaseModel):
    pending_requests: int = 0
    approved_requests: int = 0
    total_guests: int = 0

    def to_domain(self) -> SessionStats:
        return SessionStats(
            pending_requests=self.pending_requests,
            approved_requests=self.approved_requests,
            total_guests=self.total_guests,
        )


class GetSessionResponse(BaseModel):
    id: str = Field(..., min_length=1)
    session_code: str = Field(..., min_length=1)
    status: HostedSessionStatus
    stats: SessionStatsResponse = Field(default_factory=SessionStatsResponse)


class HttpHostedSessionApi(HostedSessionApi):
    def __init__(
        self,
        settings: RelaySettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or RelaySettings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.api_url,
                timeout=self._settings.request_timeout_s,
                transport=self._transport,
            )
        return self._client

    # === URL helpers ===

    def build_join_url(self, session_code: str) -> str:
        return f"{self._settings.join_base_url.rstrip('/')}/join/{session_code}"

    def build_qr_code_url(self, data: str, size: int = QR_CODE_SIZE) -> str:
        base = self._settings.qr_code_base_url.rstrip("/")
        return f"{base}/?size={size}x{size}&data={quote(data, safe='')}"

    # === Endpoints ===

    async def create(self, access_token: str, name: str | None = None) -> HostedSession:
        _require(access_token, ErrorMessages.EMPTY_ACCESS_TOKEN)

        payload = await self._request(
            "POST",
            RelayEndpoints.CREATE_SESSION,
            access_token,
            json={"name": name} if name else {},
        )
        data = _parse(CreateSessionResponse, payload)

        join_url = data.join_url or self.build_join_url(data.session_code)
        return HostedSession(
            id=data.session_id,
            join_code=data.session_code,
            join_url=join_url,
            qr_code_url=data.qr_code_url or self.build_qr_code_url(join_url),
            status=HostedSessionStatus.ACTIVE,
            stats=SessionStats(),
            expires_at=_parse_expiry(data.expires_at),
        )

    async def get(self, access_token: str, hosted_session_id: str) -> HostedSession:
        _require(access_token, ErrorMessages.EMPTY_ACCESS_TOKEN)
        _require(hosted_session_id, ErrorMessages.EMPTY_HOSTED_SESSION_ID)

        payload = await self._request(
            "GET",
            RelayEndpoints.SESSION.format(session_id=hosted_session_id),
            access_token,
        )
        data = _parse(GetSessionResponse, payload)

        join_url = self.build_join_url(data.session_code)
        return HostedSession(
            id=data.id,
            join_code=data.session_code,
            join_url=join_url,
            qr_code_url=self.build_qr_code_url(join_url),
            status=data.status,
            stats=data.stats.to_domain(),
        )

    async def end(self, access_token: str, hosted_session_id: str) -> None:
        _require(access_token, ErrorMessages.EMPTY_ACCESS_TOKEN)
        _require(hosted_session_id, ErrorMessages.EMPTY_HOSTED_SESSION_ID)

        await self._request(
            "DELETE",
            RelayEndpoints.SESSION.format(session_id=hosted_session_id),
            access_token,
            expect_body=False,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug(LogTemplates.RELAY_CLIENT_CLOSED)

    # === Transport ===

    async def _request(
        self,
        method: str,
        path: str,
        access_token: str,
        *,
        json: dict[str, Any] | None = None,
        expect_body: bool = True,
    ) -> Any:
        logger.debug(LogTemplates.RELAY_REQUEST, method, path)
        client = self._get_client()

        try:
            response = await client.request(
                method,
                path,
                json=json,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise RelayApiError(ErrorMessages.RELAY_REQUEST_FAILED.format(detail=e)) from e

        if response.is_error:
            raise RelayApiError(
                ErrorMessages.RELAY_HTTP_ERROR.format(
                    status=response.status_code, detail=response.text
                ),
                status_code=response.status_code,
            )

        if not expect_body:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise RelayApiError(
                ErrorMessages.RELAY_INVALID_RESPONSE.format(detail=e),
                status_code=response.status_code,
            ) from e


def _require(value: str, message: str) -> None:
    if not value or not value.strip():
        raise ValueError(message)


def _parse(model: type[ModelT], payload: Any) -> ModelT:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise RelayApiError(ErrorMessages.RELAY_INVALID_RESPONSE.format(detail=e)) from e


def _parse_expiry(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return UtcDateTime.from_iso(value).dt
    except ValueError:
        return None
