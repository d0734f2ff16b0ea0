"""Session Application Service - the active local session, its singers and assignments."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...domain.session.entities import SingerAssignments
from ...domain.shared.constants import next_singer_color
from ...domain.shared.events import (
    ActiveSingerChanged,
    SessionEnded,
    SessionEnding,
    SessionLoaded,
    SessionStarted,
    get_event_bus,
)
from ...domain.shared.exceptions import NoActiveSessionError, ValidationError
from ...domain.shared.messages import ErrorMessages, LogTemplates, UserMessages
from ..interfaces.notifier import NotificationLevel

if TYPE_CHECKING:
    from ...domain.session.entities import Session, Singer
    from ...domain.session.repository import SessionRepository, SingerRepository
    from ..interfaces.notifier import Notifier
    from .queue_service import QueueApplicationService

logger = logging.getLogger(__name__)


class SessionApplicationService:
    """Owns the single active ``Session`` and the singer state hanging off it.

    The session record is the durable source of truth for the hosted-* fields.
    The hosted-session lifecycle reports status changes back through
    ``apply_session_update``; the ephemeral hosted view is not kept here.
    """

    def __init__(
        self,
        *,
        session_repository: SessionRepository,
        singer_repository: SingerRepository,
        queue_service: QueueApplicationService,
        notifier: Notifier,
    ) -> None:
        self._session_repo = session_repository
        self._singer_repo = singer_repository
        self._queue_service = queue_service
        self._notifier = notifier
        self._bus = get_event_bus()

        self._session: Session | None = None
        self._singers: list[Singer] = []
        self._active_singer_id: int | None = None
        self._assignments = SingerAssignments()

    # === Queries ===

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def singers(self) -> list[Singer]:
        return list(self._singers)

    @property
    def active_singer_id(self) -> int | None:
        return self._active_singer_id

    def get_singer(self, singer_id: int) -> Singer | None:
        return next((s for s in self._singers if s.id == singer_id), None)

    def entry_singer_ids(self, entry_id: str) -> list[int]:
        return self._assignments.singer_ids(entry_id)

    def apply_session_update(self, session: Session) -> None:
        """Replace the in-memory session if it is still the active one."""
        if self._session is not None and self._session.id == session.id:
            self._session = session

    def _reset_session_state(self) -> None:
        self._singers = []
        self._active_singer_id = None
        self._assignments.reset()

    # === Session lifecycle ===

    async def load_session(self) -> Session | None:
        """Load the active session and everything scoped to it.

        Publishes ``SessionLoaded`` once singers, queue state and assignments
        are in place; hosted-session restoration hangs off that event.
        """
        try:
            session = await self._session_repo.get_active()
        except Exception as exc:
            logger.exception(LogTemplates.SESSION_LOAD_FAILED, exc)
            self._notifier.notify(NotificationLevel.ERROR, UserMessages.SESSION_LOAD_FAILED)
            return None

        self._session = session
        self._reset_session_state()
        if session is None:
            logger.debug(LogTemplates.SESSION_NONE_ACTIVE)
            return None

        logger.info(LogTemplates.SESSION_LOADED, session.id, session.name)
        await self._load_session_scope()
        await self._bus.publish(SessionLoaded(session_id=session.id))
        return session

    async def start_session(self, name: str | None = None) -> Session:
        await self._queue_service.flush()
        session = await self._session_repo.start(_clean_name(name))
        self._session = session
        self._reset_session_state()

        await self._queue_service.load_persisted_state()
        await self.load_all_assignments()

        logger.info(LogTemplates.SESSION_STARTED, session.id)
        await self._bus.publish(SessionStarted(session_id=session.id))
        return session

    async def end_session(self) -> None:
        """End the active session, stopping hosting first."""
        session = self._session
        if session is not None:
            await self._bus.publish(SessionEnding(session_id=session.id))

        await self._session_repo.clear_persisted_hosted_id()
        await self._queue_service.flush()
        await self._session_repo.end_active()

        self._session = None
        self._reset_session_state()
        self._queue_service.reset_state()

        if session is not None:
            logger.info(LogTemplates.SESSION_ENDED, session.id)
            await self._bus.publish(SessionEnded(session_id=session.id))

    async def switch_to_session(self, session_id: int) -> Session:
        """Activate a stored session.

        The previous session's hosted view is not carried over; ``SessionLoaded``
        is published so restoration runs against the new session's fields.
        """
        await self._queue_service.flush()
        session = await self._session_repo.switch_to(session_id)
        self._session = session
        self._reset_session_state()

        await self._load_session_scope()
        logger.info(LogTemplates.SESSION_SWITCHED, session_id)
        await self._bus.publish(SessionLoaded(session_id=session.id))
        return session

    async def rename_session(self, name: str | None, session_id: int | None = None) -> Session:
        """Rename a session; defaults to the active one."""
        target = session_id
        if target is None:
            if self._session is None:
                raise NoActiveSessionError()
            target = self._session.id

        updated = await self._session_repo.rename(target, _clean_name(name))
        self.apply_session_update(updated)
        logger.info(LogTemplates.SESSION_RENAMED, target, updated.name)
        return updated

    async def recent_sessions(self, limit: int = 10) -> list[Session]:
        return await self._session_repo.get_recent(limit)

    async def _load_session_scope(self) -> None:
        await self.load_singers()
        await self.load_active_singer()
        await self._queue_service.load_persisted_state()
        await self.load_all_assignments()

    # === Singers ===

    async def load_singers(self) -> None:
        if self._session is None:
            self._singers = []
            return
        try:
            self._singers = await self._singer_repo.get_session_singers(self._session.id)
        except Exception as exc:
            logger.error(LogTemplates.SINGERS_LOAD_FAILED, exc)
            self._singers = []
            self._notifier.notify(NotificationLevel.WARNING, UserMessages.SINGERS_LOAD_FAILED)

    async def create_singer(
        self,
        name: str,
        color: str | None = None,
        *,
        is_persistent: bool = False,
        online_id: str | None = None,
    ) -> Singer:
        """Create a singer, picking the next free palette color when none is given.

        The singer joins the active session, if there is one.
        """
        singer_color = color or next_singer_color([s.color for s in self._singers])
        singer = await self._singer_repo.create(
            name, singer_color, is_persistent=is_persistent, online_id=online_id
        )
        logger.info(LogTemplates.SINGER_CREATED, singer.id, singer.name)

        if self._session is not None:
            await self._singer_repo.add_to_session(self._session.id, singer.id)
            logger.info(LogTemplates.SINGER_ADDED_TO_SESSION, singer.id, self._session.id)

        self._singers.append(singer)
        return singer

    async def delete_singer(self, singer_id: int) -> None:
        await self._singer_repo.delete(singer_id)
        logger.info(LogTemplates.SINGER_DELETED, singer_id)
        await self._forget_singer(singer_id)

    async def remove_singer_from_session(self, singer_id: int) -> None:
        if self._session is None:
            raise NoActiveSessionError()

        await self._singer_repo.remove_from_session(self._session.id, singer_id)
        logger.info(LogTemplates.SINGER_REMOVED_FROM_SESSION, singer_id, self._session.id)
        await self._forget_singer(singer_id)

    async def _forget_singer(self, singer_id: int) -> None:
        self._singers = [s for s in self._singers if s.id != singer_id]
        self._assignments.remove_singer(singer_id)
        if self._active_singer_id == singer_id:
            self._active_singer_id = None
            if self._session is not None:
                await self._bus.publish(
                    ActiveSingerChanged(session_id=self._session.id, singer_id=None)
                )

    # === Active singer ===

    async def set_active_singer(self, singer_id: int | None) -> None:
        """Set (or clear, with None) the singer whose turn it is.

        Raises:
            NoActiveSessionError: If there is no active session.
            ValidationError: If the singer is not part of the session.
        """
        if self._session is None:
            raise NoActiveSessionError()
        if singer_id is not None and self.get_singer(singer_id) is None:
            raise ValidationError(
                ErrorMessages.SINGER_NOT_IN_SESSION.format(
                    singer_id=singer_id, session_id=self._session.id
                ),
                field="singer_id",
            )

        await self._singer_repo.set_active_singer_id(self._session.id, singer_id)
        self._active_singer_id = singer_id
        logger.info(LogTemplates.ACTIVE_SINGER_SET, self._session.id, singer_id)
        await self._bus.publish(ActiveSingerChanged(session_id=self._session.id, singer_id=singer_id))

    async def load_active_singer(self) -> None:
        if self._session is None:
            self._active_singer_id = None
            return
        try:
            self._active_singer_id = await self._singer_repo.get_active_singer_id(self._session.id)
        except Exception as exc:
            logger.error(LogTemplates.ACTIVE_SINGER_LOAD_FAILED, exc)
            self._active_singer_id = None

    # === Singer assignments ===

    async def assign_singer(self, entry_id: str, singer_id: int) -> None:
        await self._singer_repo.assign_to_entry(entry_id, singer_id)
        if self._assignments.assign(entry_id, singer_id):
            logger.debug(LogTemplates.SINGER_ASSIGNED, singer_id, entry_id)

    async def remove_singer_from_entry(self, entry_id: str, singer_id: int) -> None:
        await self._singer_repo.remove_from_entry(entry_id, singer_id)
        if self._assignments.unassign(entry_id, singer_id):
            logger.debug(LogTemplates.SINGER_UNASSIGNED, singer_id, entry_id)

    async def clear_entry_singers(self, entry_id: str) -> None:
        await self._singer_repo.clear_entry(entry_id)
        self._assignments.clear_entry(entry_id)

    async def load_all_assignments(self) -> None:
        if self._session is None:
            self._assignments.reset()
            return
        assignments = await self._singer_repo.get_all_assignments(self._session.id)
        self._assignments.replace(assignments)


def _clean_name(name: str | None) -> str | None:
    if name is None:
        return None
    stripped = name.strip()
    return stripped or None
