"""
Domain Layer

Contains pure business logic organized by bounded contexts:
- shared/: Cross-cutting types, exceptions and events
- queue/: Pending queue, history and cursor navigation
- session/: Local session record, hosted-session view and singers
"""

from karaoke_companion.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]
