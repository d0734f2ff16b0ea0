"""Centralized constants for configuration keys, database schema, and other shared values."""

from __future__ import annotations


class ConfigKeys:
    """Configuration and environment variable key names."""

    ENVIRONMENT = "ENVIRONMENT"
    DEBUG = "DEBUG"
    LOG_LEVEL = "LOG_LEVEL"
    NO_COLOR = "NO_COLOR"

    DATABASE__URL = "DATABASE__URL"
    RELAY__API_URL = "RELAY__API_URL"
    AUTH__REFRESH_URL = "AUTH__REFRESH_URL"
    AUTH__API_KEY = "AUTH__API_KEY"
    HOSTING__POLL_INTERVAL_SECONDS = "HOSTING__POLL_INTERVAL_SECONDS"
    QUEUE__FAIR_QUEUE_ENABLED = "QUEUE__FAIR_QUEUE_ENABLED"


class DatabaseTables:
    """Database table names."""

    SESSIONS = "sessions"
    SINGERS = "singers"
    SESSION_SINGERS = "session_singers"
    QUEUE_ITEMS = "queue_items"
    QUEUE_SINGERS = "queue_singers"
    SETTINGS = "settings"


class SettingKeys:
    """Keys in the ``settings`` key/value table."""

    HOSTED_SESSION_ID = "hosted_session_id"


class QueueItemTypes:
    QUEUE = "queue"
    HISTORY = "history"


class SQLPragmas:
    """SQLite PRAGMA statements."""

    JOURNAL_MODE_WAL = "PRAGMA journal_mode=WAL"
    FOREIGN_KEYS_ON = "PRAGMA foreign_keys=ON"
    BUSY_TIMEOUT = "PRAGMA busy_timeout={timeout}"
    TABLE_INFO = "PRAGMA table_info({table})"


class RelayEndpoints:
    """Relay API paths, relative to the configured base URL."""

    CREATE_SESSION = "/api/session/create"
    SESSION = "/api/session/{session_id}"


SINGER_COLORS: tuple[str, ...] = (
    "#EF4444",
    "#F97316",
    "#EAB308",
    "#22C55E",
    "#14B8A6",
    "#06B6D4",
    "#3B82F6",
    "#8B5CF6",
    "#EC4899",
    "#F43F5E",
    "#10B981",
    "#6366F1",
)
"""Palette used when a singer is created without a color."""


def next_singer_color(used_colors: list[str]) -> str:
    """First palette color not in use; cycles once every color is taken."""
    for color in SINGER_COLORS:
        if color not in used_colors:
            return color
    return SINGER_COLORS[len(used_colors) % len(SINGER_COLORS)]
