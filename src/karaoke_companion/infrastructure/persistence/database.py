"""SQLite database with per-operation connections and WAL mode."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiosqlite

from karaoke_companion.domain.shared.constants import SQLPragmas
from karaoke_companion.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...config.settings import DatabaseSettings

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, url: str, settings: DatabaseSettings | None = None) -> None:
        if url.startswith("sqlite:///"):
            self._db_path = url[10:]
        else:
            self._db_path = url

        self._initialized = False
        self._keepalive_conn: aiosqlite.Connection | None = None
        self._busy_timeout = settings.busy_timeout_ms if settings else 5000
        self._connection_timeout = settings.connection_timeout_s if settings else 10

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        if self._initialized:
            return

        if self._db_path != ":memory:":
            db_dir = Path(self._db_path).parent
            db_dir.mkdir(parents=True, exist_ok=True)

        # The shared in-memory DB is destroyed once its last connection closes.
        if self._db_path == ":memory:" and self._keepalive_conn is None:
            self._keepalive_conn = await self._connect()

        conn = self._keepalive_conn
        if conn is None:
            async with self.transaction() as conn2:
                await self._ensure_schema(conn2)
        else:
            await self._ensure_schema(conn)
            await conn.commit()

        self._initialized = True
        logger.info(LogTemplates.DATABASE_INITIALIZED, self._db_path)

    async def _ensure_schema(self, conn: aiosqlite.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )

        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS singers (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                color TEXT NOT NULL,
                is_persistent INTEGER NOT NULL DEFAULT 0,
                online_id TEXT,
                created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now'))
            )
            """
        )
        await conn.execute("CREATE INDEX IF NOT EXISTS idx_singers_online_id ON singers(online_id)")

        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                id INTEGER PRIMARY KEY,
                name TEXT,
                started_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now')),
                ended_at TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                history_index INTEGER NOT NULL DEFAULT -1,
                active_singer_id INTEGER REFERENCES singers(id) ON DELETE SET NULL,
                hosted_session_id TEXT,
                hosted_by_user_id TEXT,
                hosted_session_status TEXT
                    CHECK(hosted_session_status IS NULL
                          OR hosted_session_status IN ('active', 'paused', 'ended'))
            )
            """
        )
        await conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_active ON sessions(is_active)")

        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS session_singers (
                session_id INTEGER NOT NULL,
                singer_id INTEGER NOT NULL,
                joined_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f','now')),
                PRIMARY KEY (session_id, singer_id),
                FOREIGN KEY(session_id) REFERENCES sessions(id) ON DELETE CASCADE,
                FOREIGN KEY(singer_id) REFERENCES singers(id) ON DELETE CASCADE
            )
            """
        )
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_session_singers_session ON session_singers(session_id)"
        )

        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS queue_items (
                id TEXT PRIMARY KEY,
                session_id INTEGER NOT NULL,
                item_type TEXT NOT NULL CHECK(item_type IN ('queue', 'history')),
                video_id TEXT NOT NULL,
                title TEXT NOT NULL,
                artist TEXT,
                duration INTEGER,
                thumbnail_url TEXT,
                source TEXT NOT NULL CHECK(source IN ('youtube', 'local', 'external')),
                youtube_id TEXT,
                file_path TEXT,
                position INTEGER NOT NULL,
                added_at TEXT NOT NULL,
                played_at TEXT,
                FOREIGN KEY(session_id) REFERENCES sessions(id) ON DELETE CASCADE
            )
            """
        )
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_queue_items_position "
            "ON queue_items(session_id, item_type, position)"
        )

        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS queue_singers (
                id INTEGER PRIMARY KEY,
                queue_item_id TEXT NOT NULL,
                singer_id INTEGER NOT NULL,
                position INTEGER NOT NULL DEFAULT 0,
                UNIQUE(queue_item_id, singer_id),
                FOREIGN KEY(singer_id) REFERENCES singers(id) ON DELETE CASCADE
            )
            """
        )
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_queue_singers_queue_item ON queue_singers(queue_item_id)"
        )

        await self._ensure_column(conn, "sessions", "history_index", "INTEGER NOT NULL DEFAULT -1")
        await self._ensure_column(conn, "sessions", "hosted_session_id", "TEXT")
        await self._ensure_column(conn, "sessions", "hosted_by_user_id", "TEXT")
        await self._ensure_column(conn, "sessions", "hosted_session_status", "TEXT")
        await self._ensure_column(conn, "singers", "online_id", "TEXT")

    async def _ensure_column(
        self,
        conn: aiosqlite.Connection,
        table: str,
        column: str,
        column_type_sql: str,
    ) -> None:
        rows = await conn.execute_fetchall(SQLPragmas.TABLE_INFO.format(table=table))
        existing_columns = {r[1] for r in rows}
        if column in existing_columns:
            return

        await conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_type_sql}")
        logger.info(LogTemplates.TABLE_MIGRATED, table, column)

    async def _connect(self) -> aiosqlite.Connection:
        # ":memory:" is per-connection; a shared-cache URI lets every
        # connection see the same in-memory database.
        if self._db_path == ":memory:":
            db_path = "file:karaoke-companion?mode=memory&cache=shared"
            uri = True
        else:
            db_path = self._db_path
            uri = False

        conn = await aiosqlite.connect(
            db_path,
            # Timestamps use the 'T' separator, which the built-in converter rejects.
            detect_types=0,
            uri=uri,
            timeout=self._connection_timeout,
        )
        conn.row_factory = aiosqlite.Row

        await conn.execute(SQLPragmas.JOURNAL_MODE_WAL)
        await conn.execute(SQLPragmas.FOREIGN_KEYS_ON)
        await conn.execute(SQLPragmas.BUSY_TIMEOUT.format(timeout=self._busy_timeout))

        return conn

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        conn = await self._connect()
        try:
            yield conn
        except Exception:
            try:
                await conn.rollback()
            except Exception:
                pass
            raise
        finally:
            await conn.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        """Get a transaction context manager with auto-commit/rollback."""
        async with self.connection() as conn:
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    async def execute(
        self, sql: str, parameters: tuple[Any, ...] | None = None
    ) -> aiosqlite.Cursor:
        """Execute a SQL statement in its own transaction.

        Use `transaction()` when several statements must commit together.
        """
        async with self.transaction() as conn:
            if parameters is not None:
                cursor = await conn.execute(sql, parameters)
            else:
                cursor = await conn.execute(sql)
            return cursor

    async def fetch_one(
        self, sql: str, parameters: tuple[Any, ...] | None = None
    ) -> dict[str, Any] | None:
        async with self.connection() as conn:
            if parameters is not None:
                cursor = await conn.execute(sql, parameters)
            else:
                cursor = await conn.execute(sql)
            row = await cursor.fetchone()
            return dict(row) if row else None

    async def fetch_all(
        self, sql: str, parameters: tuple[Any, ...] | None = None
    ) -> list[dict[str, Any]]:
        async with self.connection() as conn:
            if parameters is not None:
                cursor = await conn.execute(sql, parameters)
            else:
                cursor = await conn.execute(sql)
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    async def close(self) -> None:
        """Close the database manager.

        For in-memory DBs this also closes the keepalive connection, which
        discards the data.
        """
        if self._keepalive_conn is not None:
            try:
                await self._keepalive_conn.close()
            finally:
                self._keepalive_conn = None
        self._initialized = False
        logger.info(LogTemplates.DATABASE_CLOSED)
