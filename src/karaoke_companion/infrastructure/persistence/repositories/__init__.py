"""SQLite repository implementations."""

from karaoke_companion.infrastructure.persistence.repositories.queue_repository import (
    SQLiteQueueRepository,
)
from karaoke_companion.infrastructure.persistence.repositories.session_repository import (
    SQLiteSessionRepository,
)
from karaoke_companion.infrastructure.persistence.repositories.singer_repository import (
    SQLiteSingerRepository,
)

__all__ = [
    "SQLiteSessionRepository",
    "SQLiteSingerRepository",
    "SQLiteQueueRepository",
]
