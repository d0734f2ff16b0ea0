from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# ============================================================================
# Event Bus
# ============================================================================


@pytest.fixture(autouse=True)
def fresh_event_bus():
    """Give every test its own global event bus."""
    from karaoke_companion.domain.shared.events import reset_event_bus

    reset_event_bus()
    yield
    reset_event_bus()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def in_memory_database():
    """Create an in-memory SQLite database for testing."""
    from karaoke_companion.infrastructure.persistence.database import Database

    db = Database(":memory:")
    await db.initialize()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def session_repository(in_memory_database):
    """Create a session repository with in-memory database."""
    from karaoke_companion.infrastructure.persistence.repositories.session_repository import (
        SQLiteSessionRepository,
    )

    return SQLiteSessionRepository(in_memory_database)


@pytest_asyncio.fixture
async def singer_repository(in_memory_database):
    """Create a singer repository with in-memory database."""
    from karaoke_companion.infrastructure.persistence.repositories.singer_repository import (
        SQLiteSingerRepository,
    )

    return SQLiteSingerRepository(in_memory_database)


@pytest_asyncio.fixture
async def queue_repository(in_memory_database):
    """Create a queue repository with in-memory database."""
    from karaoke_companion.infrastructure.persistence.repositories.queue_repository import (
        SQLiteQueueRepository,
    )

    return SQLiteQueueRepository(in_memory_database)


# ============================================================================
# Domain Entity Fixtures
# ============================================================================


@pytest.fixture
def sample_track():
    """Create a sample track for testing."""
    from karaoke_companion.domain.queue.entities import Track

    return Track(
        id="yt-123",
        title="Bohemian Rhapsody",
        artist="Queen",
        duration_seconds=354,
        thumbnail_url="https://i.ytimg.com/vi/yt-123/hqdefault.jpg",
        youtube_id="yt-123",
    )


@pytest.fixture
def tracks():
    """Three distinct tracks A, B, C."""
    from karaoke_companion.domain.queue.entities import Track

    return [Track(id=f"vid-{name}", title=f"Song {name}") for name in ("A", "B", "C")]


# ============================================================================
# Port Mocks
# ============================================================================


@pytest.fixture
def mock_queue_repo():
    """Queue repository whose writes all succeed."""
    repo = AsyncMock()
    repo.get_state.return_value = None
    return repo


@pytest.fixture
def mock_notifier():
    return MagicMock()
