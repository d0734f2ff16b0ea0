"""
Session Bounded Context

The durable local session record with its hosted-session linkage, the
ephemeral relay-verified hosted-session view, and singers.
"""

from karaoke_companion.domain.session.entities import (
    HostedSession,
    HostedSessionStatus,
    Session,
    SessionStats,
    Singer,
    SingerAssignments,
)
from karaoke_companion.domain.session.repository import SessionRepository, SingerRepository

__all__ = [
    # Entities
    "Session",
    "HostedSession",
    "HostedSessionStatus",
    "SessionStats",
    "Singer",
    "SingerAssignments",
    # Repositories
    "SessionRepository",
    "SingerRepository",
]
