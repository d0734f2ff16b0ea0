"""Domain event bus for publishing and subscribing to events."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from karaoke_companion.domain.shared.datetime_utils import utcnow
from karaoke_companion.domain.shared.types import NonEmptyStr, NonNegativeInt, UtcDatetimeField

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="DomainEvent")
EventHandler = Callable[[T], Awaitable[None]]


class DomainEvent(BaseModel):
    """Base class for all domain events."""

    model_config = ConfigDict(frozen=True)

    event_id: NonEmptyStr = Field(default_factory=lambda: str(uuid4()))
    occurred_at: UtcDatetimeField = Field(default_factory=utcnow)


# === Session Events ===


class SessionLoaded(DomainEvent):
    session_id: int = 0


class SessionStarted(DomainEvent):
    session_id: int = 0


class SessionEnding(DomainEvent):
    """Published and awaited before the active session is ended."""

    session_id: int = 0


class SessionEnded(DomainEvent):
    session_id: int = 0


class ActiveSingerChanged(DomainEvent):
    session_id: int = 0
    singer_id: int | None = None


# === Hosting Events ===


class HostingStarted(DomainEvent):
    session_id: int = 0
    hosted_session_id: str = ""
    join_code: str = ""


class HostingStopped(DomainEvent):
    session_id: int | None = None
    hosted_session_id: str = ""


class HostingFailed(DomainEvent):
    operation: str = ""
    message: str = ""


class HostedSessionRestored(DomainEvent):
    session_id: int = 0
    hosted_session_id: str = ""


class HostedSessionStatsUpdated(DomainEvent):
    hosted_session_id: str = ""
    pending_requests: NonNegativeInt = 0
    approved_requests: NonNegativeInt = 0
    total_guests: NonNegativeInt = 0


class HostedByOtherUserDetected(DomainEvent):
    session_id: int = 0


class HostedSessionExpired(DomainEvent):
    hosted_session_id: str = ""


# === Event Bus ===


class EventBus:
    """In-memory pub/sub event bus for domain events.

    Handlers are called concurrently. Exceptions in handlers are logged
    but do not prevent other handlers from running.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[EventHandler[Any]]] = defaultdict(list)

    def subscribe(self, event_type: type[T], handler: EventHandler[T]) -> None:
        self._handlers[event_type].append(handler)
        logger.debug("Subscribed handler to: %s", event_type.__name__)

    def unsubscribe(self, event_type: type[T], handler: EventHandler[T]) -> None:
        handlers = self._handlers[event_type]
        if handler in handlers:
            handlers.remove(handler)
            logger.debug("Unsubscribed handler from %s", event_type.__name__)

    async def publish(self, event: DomainEvent) -> None:
        event_type = type(event)
        handlers = list(self._handlers.get(event_type, []))

        if not handlers:
            logger.debug("No handlers for %s", event_type.__name__)
            return

        logger.debug("Publishing %s to %d handlers", event_type.__name__, len(handlers))

        async def safe_call(handler: EventHandler[Any]) -> None:
            try:
                await handler(event)
            except Exception as e:
                logger.exception("Error in handler for %s: %s", event_type.__name__, e)

        async with asyncio.TaskGroup() as tg:
            for handler in handlers:
                tg.create_task(safe_call(handler))

    def clear(self) -> None:
        """Remove all handlers."""
        self._handlers.clear()
        logger.debug("Cleared all event handlers")


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get or create the global event bus singleton."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Reset the global event bus (for testing)."""
    global _event_bus
    if _event_bus is not None:
        _event_bus.clear()
    _event_bus = None
