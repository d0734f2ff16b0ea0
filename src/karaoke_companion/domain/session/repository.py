"""
Session Domain Repository Interfaces

Abstract base classes defining the contracts for session and singer persistence.
"""

from abc import ABC, abstractmethod

from karaoke_companion.domain.session.entities import HostedSessionStatus, Session, Singer


class SessionRepository(ABC):
    """Abstract repository for local sessions and their hosted-session linkage."""

    @abstractmethod
    async def get_active(self) -> Session | None:
        """Get the single active session, if any."""
        ...

    @abstractmethod
    async def get(self, session_id: int) -> Session | None:
        ...

    @abstractmethod
    async def start(self, name: str | None = None) -> Session:
        """End any active session and create a new active one."""
        ...

    @abstractmethod
    async def end_active(self) -> None:
        """End the active session (no-op if there is none).

        A session with queue items or singers is archived; an empty one is
        deleted. Orphaned non-persistent singers are purged either way.
        """
        ...

    @abstractmethod
    async def switch_to(self, session_id: int) -> Session:
        """Make *session_id* the active session, ending the current one.

        Raises:
            EntityNotFoundError: If the session does not exist.
        """
        ...

    @abstractmethod
    async def rename(self, session_id: int, name: str | None) -> Session:
        ...

    @abstractmethod
    async def get_recent(self, limit: int = 10) -> list[Session]:
        """Get ended sessions, most recent first."""
        ...

    @abstractmethod
    async def set_hosted_session(
        self,
        session_id: int,
        hosted_session_id: str,
        user_id: str,
        status: HostedSessionStatus,
    ) -> None:
        """Write all three hosted-* fields atomically.

        The write is refused when a different user already holds a live
        (active or paused) hosted session on this row.

        Raises:
            OwnershipConflictError: If another user owns the hosted session.
            EntityNotFoundError: If the session does not exist.
        """
        ...

    @abstractmethod
    async def update_hosted_status(self, session_id: int, status: HostedSessionStatus) -> None:
        """Advance the hosted status, leaving id and owner untouched."""
        ...

    # Legacy standalone "last hosted id" slot

    @abstractmethod
    async def get_persisted_hosted_id(self) -> str | None:
        ...

    @abstractmethod
    async def set_persisted_hosted_id(self, hosted_session_id: str) -> None:
        ...

    @abstractmethod
    async def clear_persisted_hosted_id(self) -> None:
        ...


class SingerRepository(ABC):
    """Abstract repository for singers, session membership and entry assignments."""

    @abstractmethod
    async def create(
        self, name: str, color: str, *, is_persistent: bool = False, online_id: str | None = None
    ) -> Singer:
        ...

    @abstractmethod
    async def get_all(self) -> list[Singer]:
        ...

    @abstractmethod
    async def delete(self, singer_id: int) -> None:
        ...

    @abstractmethod
    async def add_to_session(self, session_id: int, singer_id: int) -> None:
        ...

    @abstractmethod
    async def remove_from_session(self, session_id: int, singer_id: int) -> None:
        ...

    @abstractmethod
    async def get_session_singers(self, session_id: int) -> list[Singer]:
        ...

    @abstractmethod
    async def get_active_singer_id(self, session_id: int) -> int | None:
        ...

    @abstractmethod
    async def set_active_singer_id(self, session_id: int, singer_id: int | None) -> None:
        ...

    @abstractmethod
    async def assign_to_entry(self, entry_id: str, singer_id: int) -> None:
        """Append *singer_id* to the entry's ordered singer list (idempotent)."""
        ...

    @abstractmethod
    async def remove_from_entry(self, entry_id: str, singer_id: int) -> None:
        ...

    @abstractmethod
    async def clear_entry(self, entry_id: str) -> None:
        ...

    @abstractmethod
    async def get_entry_singer_ids(self, entry_id: str) -> list[int]:
        ...

    @abstractmethod
    async def get_all_assignments(self, session_id: int) -> dict[str, list[int]]:
        """Get assignments for every queue/history entry of the session."""
        ...
