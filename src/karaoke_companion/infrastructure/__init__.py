"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Persistence (aiosqlite database and repositories)
- Relay (hosted-session HTTP client)
- Auth (token storage and refresh)
"""

from karaoke_companion.infrastructure.auth import HttpTokenRefresher, InMemoryTokenStore
from karaoke_companion.infrastructure.persistence.database import Database
from karaoke_companion.infrastructure.relay import HttpHostedSessionApi

__all__ = [
    "Database",
    "HttpHostedSessionApi",
    "HttpTokenRefresher",
    "InMemoryTokenStore",
]
