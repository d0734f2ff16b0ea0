"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters. These are the "ports" in
hexagonal architecture.
"""

from karaoke_companion.application.interfaces.auth import (
    AuthTokens,
    TokenRefresher,
    TokenStore,
    User,
)
from karaoke_companion.application.interfaces.fair_ranking import FairPositionRanker
from karaoke_companion.application.interfaces.hosted_session_api import HostedSessionApi
from karaoke_companion.application.interfaces.notifier import (
    LoggingNotifier,
    NotificationLevel,
    Notifier,
)

__all__ = [
    "AuthTokens",
    "User",
    "TokenStore",
    "TokenRefresher",
    "FairPositionRanker",
    "HostedSessionApi",
    "Notifier",
    "NotificationLevel",
    "LoggingNotifier",
]
