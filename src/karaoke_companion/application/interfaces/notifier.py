"""
Notifier Interface

Port for the notification surface. The core only decides whether to notify
and with what message; rendering is up to the adapter.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import StrEnum

logger = logging.getLogger(__name__)


class NotificationLevel(StrEnum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notifier(ABC):
    @abstractmethod
    def notify(self, level: NotificationLevel, message: str) -> None:
        ...


class LoggingNotifier(Notifier):
    """Notifier that writes notifications to the log; used when no UI is attached."""

    def notify(self, level: NotificationLevel, message: str) -> None:
        match level:
            case NotificationLevel.ERROR:
                logger.error(message)
            case NotificationLevel.WARNING:
                logger.warning(message)
            case _:
                logger.info(message)
