"""
Hosted Session API Interface

Port interface for the owner-side calls of the relay service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.session.entities import HostedSession


class HostedSessionApi(ABC):
    """Abstract interface for the hosted-session relay.

    Every failure is raised as ``RelayApiError`` carrying the HTTP status
    code, or ``None`` when no response was received.
    """

    @abstractmethod
    async def create(self, access_token: str, name: str | None = None) -> HostedSession:
        """Create a hosted session for the current local session.

        Args:
            access_token: Bearer token of the signed-in user.
            name: Optional display name shown to guests.

        Returns:
            The newly created hosted session.
        """
        ...

    @abstractmethod
    async def get(self, access_token: str, hosted_session_id: str) -> HostedSession:
        """Fetch the current state and stats of a hosted session."""
        ...

    @abstractmethod
    async def end(self, access_token: str, hosted_session_id: str) -> None:
        """End a hosted session on the relay."""
        ...

    async def close(self) -> None:
        """Release any underlying transport."""
        return None
