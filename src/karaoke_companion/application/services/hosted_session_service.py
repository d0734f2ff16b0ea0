"""Hosted-session lifecycle: create, restore, poll and stop a relay-hosted session.

States:
    NOT_HOSTED  - no verified hosted session in memory.
    HOSTING     - a relay-verified ``HostedSession`` is held and polled.
    BLOCKED     - another user owns the session's live hosted session.

Durable state (the session's hosted-* fields and the legacy id slot) is only
touched on definitive relay answers (404/401/403 or a non-active status).
Transient failures never change it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel

from ...domain.session.entities import HostedSessionStatus
from ...domain.shared.events import (
    HostedByOtherUserDetected,
    HostedSessionExpired,
    HostedSessionRestored,
    HostedSessionStatsUpdated,
    HostingFailed,
    HostingStarted,
    HostingStopped,
    SessionEnding,
    SessionLoaded,
    get_event_bus,
)
from ...domain.shared.exceptions import (
    HostedByOtherUserError,
    NoActiveSessionError,
    OwnershipConflictError,
    RelayApiError,
    RelayFailureKind,
    UserNotLoadedError,
)
from ...domain.shared.messages import LogTemplates, UserMessages
from ..interfaces.notifier import NotificationLevel
from .poller import HostedSessionPoller

if TYPE_CHECKING:
    from ...config.settings import AuthSettings, HostingSettings
    from ...domain.session.entities import HostedSession, Session
    from ...domain.session.repository import SessionRepository
    from ..interfaces.hosted_session_api import HostedSessionApi
    from ..interfaces.notifier import Notifier
    from .auth_gate import AuthTokenGate
    from .session_service import SessionApplicationService

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 30
DEFAULT_USER_PROFILE_TIMEOUT_S = 5.0


class HostingState(Enum):
    NOT_HOSTED = "not_hosted"
    HOSTING = "hosting"
    BLOCKED_BY_OTHER_OWNER = "blocked_by_other_owner"


class HostingUiState(BaseModel):
    """Flags the UI renders; the lifecycle only decides when they flip."""

    show_host_modal: bool = False
    show_hosted_by_other_user_dialog: bool = False


def _failure_kind(exc: Exception) -> RelayFailureKind:
    if isinstance(exc, RelayApiError):
        return exc.failure_kind
    return RelayFailureKind.TRANSIENT


class HostedSessionLifecycle:
    """Reconciles local session ownership with the relay.

    All mutable hosting state lives on the instance: the verified hosted
    session, the single poll timer and the refresh-in-flight flag.
    """

    def __init__(
        self,
        *,
        session_service: SessionApplicationService,
        session_repository: SessionRepository,
        hosted_session_api: HostedSessionApi,
        auth_gate: AuthTokenGate,
        notifier: Notifier,
        settings: HostingSettings | None = None,
        auth_settings: AuthSettings | None = None,
    ) -> None:
        self._sessions = session_service
        self._session_repo = session_repository
        self._api = hosted_session_api
        self._auth = auth_gate
        self._notifier = notifier
        self._bus = get_event_bus()

        interval = settings.poll_interval_seconds if settings else DEFAULT_POLL_INTERVAL_SECONDS
        self._max_restore_failures = settings.max_consecutive_restore_failures if settings else None
        self._user_timeout = (
            auth_settings.user_profile_timeout_s if auth_settings else DEFAULT_USER_PROFILE_TIMEOUT_S
        )

        self._poller = HostedSessionPoller(
            interval_seconds=interval, callback=self.refresh_hosted_session
        )
        self._hosted: HostedSession | None = None
        self._refresh_in_progress = False
        self._previous_pending: int | None = None
        self._restore_failures: dict[str, int] = {}
        self.ui = HostingUiState()
        self._started = False

    # === Queries ===

    @property
    def hosted_session(self) -> HostedSession | None:
        return self._hosted

    @property
    def poller(self) -> HostedSessionPoller:
        return self._poller

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_in_progress

    @property
    def state(self) -> HostingState:
        if self._hosted is not None:
            return HostingState.HOSTING
        if self.ui.show_hosted_by_other_user_dialog:
            return HostingState.BLOCKED_BY_OTHER_OWNER
        return HostingState.NOT_HOSTED

    # === Subscriptions ===

    def start(self) -> None:
        if self._started:
            return
        self._bus.subscribe(SessionLoaded, self._on_session_loaded)
        self._bus.subscribe(SessionEnding, self._on_session_ending)
        self._started = True

    def stop(self) -> None:
        """Unsubscribe and cancel polling. Durable state is left untouched."""
        self._poller.cancel()
        if not self._started:
            return
        self._bus.unsubscribe(SessionLoaded, self._on_session_loaded)
        self._bus.unsubscribe(SessionEnding, self._on_session_ending)
        self._started = False

    async def _on_session_loaded(self, event: SessionLoaded) -> None:
        current = self._sessions.session
        if self._hosted is not None and (
            current is None or current.hosted_session_id != self._hosted.id
        ):
            self._detach()
        await self.restore_hosted_session()

    async def _on_session_ending(self, event: SessionEnding) -> None:
        await self.stop_hosting()

    # === UI state ===

    def open_host_modal(self) -> None:
        self.ui.show_host_modal = True

    def close_host_modal(self) -> None:
        self.ui.show_host_modal = False

    def close_hosted_by_other_user_dialog(self) -> None:
        self.ui.show_hosted_by_other_user_dialog = False

    # === Transitions ===

    async def host_session(self) -> HostedSession | None:
        """Start hosting the active session.

        Returns the hosted session, or None when a concurrent ownership claim
        won the race (the conflict dialog is raised instead).

        Raises:
            NoActiveSessionError: No active local session.
            NotAuthenticatedError: No stored tokens.
            SessionExpiredError: Tokens expired and could not be refreshed.
            UserNotLoadedError: The user's profile is not loaded.
            HostedByOtherUserError: Another user holds a live hosted session.
        """
        session = self._sessions.session
        if session is None:
            logger.error(LogTemplates.HOSTING_FAILED, "no active session")
            raise NoActiveSessionError()

        if self._hosted is not None and self._hosted.id == session.hosted_session_id:
            return self._hosted

        try:
            tokens = await self._auth.ensure_valid_tokens()

            user = self._auth.current_user
            if user is None:
                raise UserNotLoadedError()

            if session.is_hosted_by_other(user.id):
                raise HostedByOtherUserError()

            hosted = await self._api.create(tokens.access_token, session.name)

            if not self._is_same_session(session.id):
                logger.warning(LogTemplates.HOSTING_STALE_RESULT, "create", hosted.id)
                await self._end_remote_quietly(tokens.access_token, hosted.id)
                return None

            try:
                await self._session_repo.set_hosted_session(
                    session.id, hosted.id, user.id, HostedSessionStatus.ACTIVE
                )
            except OwnershipConflictError:
                logger.warning(LogTemplates.HOSTING_OWNERSHIP_RACE, session.id, hosted.id)
                await self._end_remote_quietly(tokens.access_token, hosted.id)
                self.ui.show_hosted_by_other_user_dialog = True
                await self._bus.publish(HostedByOtherUserDetected(session_id=session.id))
                return None

            await self._session_repo.set_persisted_hosted_id(hosted.id)
        except Exception as exc:
            logger.error(LogTemplates.HOSTING_FAILED, exc)
            await self._bus.publish(HostingFailed(operation="host_session", message=str(exc)))
            raise

        current = self._sessions.session or session
        self._sessions.apply_session_update(
            current.with_hosted(hosted.id, user.id, HostedSessionStatus.ACTIVE)
        )
        self._attach(hosted)
        self.ui.show_host_modal = True

        logger.info(LogTemplates.HOSTING_STARTED, session.id, hosted.id, hosted.join_code)
        await self._bus.publish(
            HostingStarted(
                session_id=session.id, hosted_session_id=hosted.id, join_code=hosted.join_code
            )
        )
        return hosted

    async def stop_hosting(self) -> None:
        """Stop hosting. Local state is cleared even if the relay call fails."""
        hosted = self._hosted
        if hosted is None:
            logger.debug(LogTemplates.HOSTING_STOP_SKIPPED)
            return

        session = self._sessions.session

        # A crash after this point must not leave the id pointing at a dead session.
        await self._session_repo.clear_persisted_hosted_id()

        remote_failed = False
        try:
            tokens = await self._auth.get_tokens()
            if tokens is not None:
                await self._api.end(tokens.access_token, hosted.id)
        except Exception as exc:
            remote_failed = True
            logger.warning(LogTemplates.HOSTING_END_REMOTE_FAILED, hosted.id, exc)

        if self._hosted is not None and self._hosted.id == hosted.id:
            self._detach()

        if session is not None and session.hosted_session_id == hosted.id:
            try:
                await self._session_repo.update_hosted_status(session.id, HostedSessionStatus.ENDED)
            except Exception as exc:
                logger.error(LogTemplates.HOSTING_STATUS_PERSIST_FAILED, session.id, exc)
            self._apply_status(session.id, hosted.id, HostedSessionStatus.ENDED)

        if remote_failed:
            self._notifier.notify(NotificationLevel.WARNING, UserMessages.HOSTING_END_FAILED)
            await self._bus.publish(
                HostingFailed(operation="stop_hosting", message=UserMessages.HOSTING_END_FAILED)
            )

        logger.info(LogTemplates.HOSTING_STOPPED, hosted.id)
        await self._bus.publish(
            HostingStopped(
                session_id=session.id if session else None, hosted_session_id=hosted.id
            )
        )

    async def restore_hosted_session(self) -> HostedSession | None:
        """Reconnect to the session's hosted session after a load or restart.

        Silent on every branch except success and an ownership conflict.
        """
        session = self._sessions.session
        if session is None:
            logger.debug(LogTemplates.RESTORE_SKIPPED, "no active session")
            return None
        if not session.has_hosted_fields:
            logger.debug(LogTemplates.RESTORE_SKIPPED, "session was never hosted")
            return None
        if session.hosting_ended:
            logger.debug(LogTemplates.RESTORE_SKIPPED, "hosted status is ended")
            return None

        tokens = await self._auth.get_tokens()
        if tokens is None:
            logger.debug(LogTemplates.RESTORE_SKIPPED, "not authenticated")
            return None

        user = await self._auth.wait_for_user(self._user_timeout)
        if user is None:
            logger.debug(LogTemplates.RESTORE_SKIPPED, "user profile not loaded")
            return None

        if not self._is_current(session):
            logger.debug(LogTemplates.HOSTING_STALE_RESULT, "restore", session.hosted_session_id)
            return None

        if session.hosted_by_user_id != user.id:
            logger.info(LogTemplates.HOSTED_BY_OTHER_USER, session.id, session.hosted_by_user_id)
            self.ui.show_hosted_by_other_user_dialog = True
            await self._bus.publish(HostedByOtherUserDetected(session_id=session.id))
            return None

        if self._hosted is not None:
            logger.debug(LogTemplates.RESTORE_SKIPPED, "already hosting")
            return self._hosted

        if not self._auth.is_token_valid(tokens):
            refreshed = await self._auth.refresh_if_needed()
            if refreshed is None:
                logger.debug(LogTemplates.RESTORE_SKIPPED, "token refresh failed")
                return None
            tokens = refreshed

        # The session's own field is authoritative; the legacy slot is only kept in sync.
        target_id = session.hosted_session_id
        if not target_id:
            logger.debug(LogTemplates.RESTORE_SKIPPED, "no hosted session id")
            return None

        try:
            remote = await self._api.get(tokens.access_token, target_id)
        except Exception as exc:
            await self._handle_restore_failure(session, target_id, exc)
            return None

        if not self._is_current(session) or self._hosted is not None:
            logger.debug(LogTemplates.HOSTING_STALE_RESULT, "restore", target_id)
            return None

        self._restore_failures.pop(target_id, None)

        if remote.status is not HostedSessionStatus.ACTIVE:
            logger.info(LogTemplates.RESTORE_REMOTE_ENDED, target_id, remote.status.value)
            await self._mark_ended(session)
            await self._session_repo.clear_persisted_hosted_id()
            return None

        if session.hosted_session_status is not HostedSessionStatus.ACTIVE:
            await self._session_repo.update_hosted_status(session.id, HostedSessionStatus.ACTIVE)
            self._apply_status(session.id, target_id, HostedSessionStatus.ACTIVE)

        self._attach(remote)
        logger.info(LogTemplates.RESTORE_SUCCEEDED, remote.id)
        self._notifier.notify(NotificationLevel.SUCCESS, UserMessages.HOSTING_RECONNECTED)
        await self._bus.publish(
            HostedSessionRestored(session_id=session.id, hosted_session_id=remote.id)
        )
        return remote

    async def refresh_hosted_session(self) -> None:
        """One poll tick: refresh stats, drop the session on a definitive failure."""
        hosted = self._hosted
        if hosted is None:
            return
        if self._refresh_in_progress:
            logger.debug(LogTemplates.REFRESH_SKIPPED, "previous refresh still in flight")
            return

        self._refresh_in_progress = True
        try:
            tokens = await self._auth.get_tokens()
            if tokens is None:
                logger.debug(LogTemplates.REFRESH_SKIPPED, "not authenticated")
                return
            if not self._auth.is_token_valid(tokens):
                logger.debug(LogTemplates.REFRESH_SKIPPED, "token expired")
                return

            try:
                updated = await self._api.get(tokens.access_token, hosted.id)
            except Exception as exc:
                await self._handle_refresh_failure(hosted, exc)
                return

            if self._hosted is None or self._hosted.id != hosted.id:
                logger.debug(LogTemplates.HOSTING_STALE_RESULT, "refresh", hosted.id)
                return

            stats = updated.stats
            previous = self._previous_pending
            if previous is not None and stats.pending_requests > previous:
                diff = stats.pending_requests - previous
                self._notifier.notify(
                    NotificationLevel.INFO,
                    UserMessages.NEW_SONG_REQUESTS.format(
                        count=diff, suffix="s" if diff > 1 else ""
                    ),
                )
            self._previous_pending = stats.pending_requests
            self._hosted = self._hosted.with_stats(stats)

            logger.debug(
                LogTemplates.REFRESH_STATS,
                hosted.id,
                stats.pending_requests,
                stats.approved_requests,
                stats.total_guests,
            )
            await self._bus.publish(
                HostedSessionStatsUpdated(
                    hosted_session_id=hosted.id,
                    pending_requests=stats.pending_requests,
                    approved_requests=stats.approved_requests,
                    total_guests=stats.total_guests,
                )
            )
        finally:
            self._refresh_in_progress = False

    async def shutdown(self) -> None:
        self.stop()

    # === Failure handling ===

    async def _handle_restore_failure(self, session: Session, target_id: str, exc: Exception) -> None:
        await self._bus.publish(HostingFailed(operation="restore_hosted_session", message=str(exc)))

        kind = _failure_kind(exc)
        match kind:
            case RelayFailureKind.NOT_FOUND:
                logger.info(LogTemplates.RESTORE_DEFINITIVE_FAILURE, target_id, kind.value)
                self._restore_failures.pop(target_id, None)
                await self._session_repo.clear_persisted_hosted_id()
            case RelayFailureKind.UNAUTHORIZED | RelayFailureKind.FORBIDDEN:
                logger.info(LogTemplates.RESTORE_DEFINITIVE_FAILURE, target_id, kind.value)
                self._restore_failures.pop(target_id, None)
                await self._session_repo.clear_persisted_hosted_id()
                await self._mark_ended(session)
            case RelayFailureKind.TRANSIENT:
                failures = self._restore_failures.get(target_id, 0) + 1
                self._restore_failures[target_id] = failures
                limit = self._max_restore_failures
                if limit is not None and failures >= limit:
                    logger.warning(LogTemplates.RESTORE_FAILURE_LIMIT_REACHED, target_id, failures)
                    self._restore_failures.pop(target_id, None)
                    await self._session_repo.clear_persisted_hosted_id()
                    await self._mark_ended(session)
                    return
                logger.warning(
                    LogTemplates.RESTORE_TRANSIENT_FAILURE,
                    target_id,
                    failures,
                    limit if limit is not None else "unlimited",
                    exc,
                )

    async def _handle_refresh_failure(self, hosted: HostedSession, exc: Exception) -> None:
        await self._bus.publish(HostingFailed(operation="refresh_hosted_session", message=str(exc)))

        kind = _failure_kind(exc)
        if not kind.is_definitive:
            logger.warning(LogTemplates.REFRESH_TRANSIENT_FAILURE, hosted.id, exc)
            return

        logger.warning(LogTemplates.REFRESH_DEFINITIVE_FAILURE, hosted.id, kind.value)
        await self._session_repo.clear_persisted_hosted_id()
        if self._hosted is None or self._hosted.id != hosted.id:
            return

        self._detach()
        self._notifier.notify(NotificationLevel.WARNING, UserMessages.HOSTING_ENDED_OR_EXPIRED)
        await self._bus.publish(HostedSessionExpired(hosted_session_id=hosted.id))

    # === Helpers ===

    def _attach(self, hosted: HostedSession) -> None:
        self._hosted = hosted
        self._previous_pending = hosted.stats.pending_requests
        self._poller.start()

    def _detach(self) -> None:
        self._poller.cancel()
        self._hosted = None
        self._previous_pending = None
        self.ui.show_host_modal = False

    def _is_same_session(self, session_id: int) -> bool:
        current = self._sessions.session
        return current is not None and current.id == session_id

    def _is_current(self, session: Session) -> bool:
        """True while *session* is still active with the same hosted id."""
        current = self._sessions.session
        return (
            current is not None
            and current.id == session.id
            and current.hosted_session_id == session.hosted_session_id
        )

    def _apply_status(self, session_id: int, hosted_id: str, status: HostedSessionStatus) -> None:
        current = self._sessions.session
        if current is None or current.id != session_id or current.hosted_session_id != hosted_id:
            return
        self._sessions.apply_session_update(current.with_hosted_status(status))
        logger.info(LogTemplates.SESSION_HOSTED_STATUS_UPDATED, session_id, status.value)

    async def _mark_ended(self, session: Session) -> None:
        await self._session_repo.update_hosted_status(session.id, HostedSessionStatus.ENDED)
        if session.hosted_session_id is not None:
            self._apply_status(session.id, session.hosted_session_id, HostedSessionStatus.ENDED)

    async def _end_remote_quietly(self, access_token: str, hosted_id: str) -> None:
        try:
            await self._api.end(access_token, hosted_id)
        except Exception as exc:
            logger.error(LogTemplates.HOSTING_ORPHAN_END_FAILED, hosted_id, exc)
