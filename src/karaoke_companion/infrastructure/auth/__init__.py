"""Auth infrastructure: token storage and refresh."""

from karaoke_companion.infrastructure.auth.token_refresher import HttpTokenRefresher
from karaoke_companion.infrastructure.auth.token_store import InMemoryTokenStore

__all__ = ["HttpTokenRefresher", "InMemoryTokenStore"]
