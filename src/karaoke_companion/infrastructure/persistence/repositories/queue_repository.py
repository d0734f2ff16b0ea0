"""SQLite implementation of the queue repository.

Every operation targets the currently active session. Positions are
zero-based and kept contiguous per ``item_type``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import aiosqlite

from karaoke_companion.domain.queue.entities import QueueEntry, Track, TrackSource
from karaoke_companion.domain.queue.play_queue import HISTORY_TIP_INDEX, QueueSnapshot
from karaoke_companion.domain.queue.repository import QueueRepository
from karaoke_companion.domain.shared.constants import QueueItemTypes
from karaoke_companion.domain.shared.datetime_utils import UtcDateTime
from karaoke_companion.domain.shared.exceptions import EntityNotFoundError, ValidationError

if TYPE_CHECKING:
    from ..database import Database


class SQLiteQueueRepository(QueueRepository):
    def __init__(self, database: Database) -> None:
        self._db = database

    async def get_state(self) -> QueueSnapshot | None:
        session_row = await self._db.fetch_one(
            "SELECT id, history_index FROM sessions WHERE is_active = 1 ORDER BY id DESC LIMIT 1"
        )
        if session_row is None:
            return None

        rows = await self._db.fetch_all(
            """
            SELECT * FROM queue_items
            WHERE session_id = ?
            ORDER BY item_type, position ASC
            """,
            (session_row["id"],),
        )

        queue: list[QueueEntry] = []
        history: list[QueueEntry] = []
        for row in rows:
            entry = self._row_to_entry(row)
            if row["item_type"] == QueueItemTypes.HISTORY:
                history.append(entry)
            else:
                queue.append(entry)

        return QueueSnapshot(
            queue=queue,
            history=history,
            history_index=session_row["history_index"],
        )

    async def add_item(self, entry: QueueEntry, position: int) -> None:
        async with self._db.transaction() as conn:
            session_id = await self._active_session_id(conn)
            await self._insert(conn, session_id, entry, QueueItemTypes.QUEUE, position)

    async def add_to_history(self, entry: QueueEntry, position: int) -> None:
        async with self._db.transaction() as conn:
            session_id = await self._active_session_id(conn)
            await self._insert(conn, session_id, entry, QueueItemTypes.HISTORY, position)

    async def remove_item(self, entry_id: str) -> None:
        async with self._db.transaction() as conn:
            session_id = await self._active_session_id(conn)
            await conn.execute(
                "DELETE FROM queue_items WHERE id = ? AND session_id = ? AND item_type = ?",
                (entry_id, session_id, QueueItemTypes.QUEUE),
            )
            await self._renumber(conn, session_id, QueueItemTypes.QUEUE)

    async def reorder(self, entry_id: str, new_position: int) -> None:
        if new_position < 0:
            raise ValidationError("Position cannot be negative", field="new_position")

        async with self._db.transaction() as conn:
            session_id = await self._active_session_id(conn)
            current = await self._position_of(conn, session_id, entry_id, QueueItemTypes.QUEUE)
            max_position = await self._max_position(conn, session_id, QueueItemTypes.QUEUE)

            if new_position > max_position:
                raise ValidationError(
                    f"Position {new_position} is out of bounds (max: {max_position})",
                    field="new_position",
                )
            if current == new_position:
                return

            if new_position < current:
                await conn.execute(
                    """
                    UPDATE queue_items SET position = position + 1
                    WHERE session_id = ? AND item_type = ?
                      AND position >= ? AND position < ?
                    """,
                    (session_id, QueueItemTypes.QUEUE, new_position, current),
                )
            else:
                await conn.execute(
                    """
                    UPDATE queue_items SET position = position - 1
                    WHERE session_id = ? AND item_type = ?
                      AND position > ? AND position <= ?
                    """,
                    (session_id, QueueItemTypes.QUEUE, current, new_position),
                )

            await conn.execute(
                "UPDATE queue_items SET position = ? WHERE id = ?",
                (new_position, entry_id),
            )

    async def move_to_history(self, entry_id: str) -> None:
        async with self._db.transaction() as conn:
            session_id = await self._active_session_id(conn)
            await self._position_of(conn, session_id, entry_id, QueueItemTypes.QUEUE)
            history_max = await self._max_position(conn, session_id, QueueItemTypes.HISTORY)

            await conn.execute(
                """
                UPDATE queue_items
                SET item_type = ?, position = ?, played_at = ?
                WHERE id = ?
                """,
                (QueueItemTypes.HISTORY, history_max + 1, UtcDateTime.now().iso, entry_id),
            )
            await self._renumber(conn, session_id, QueueItemTypes.QUEUE)

    async def set_history_index(self, index: int) -> None:
        async with self._db.transaction() as conn:
            session_id = await self._active_session_id(conn)
            await conn.execute(
                "UPDATE sessions SET history_index = ? WHERE id = ?",
                (index, session_id),
            )

    async def clear_queue(self) -> None:
        async with self._db.transaction() as conn:
            session_id = await self._active_session_id(conn)
            await conn.execute(
                "DELETE FROM queue_items WHERE session_id = ? AND item_type = ?",
                (session_id, QueueItemTypes.QUEUE),
            )

    async def clear_history(self) -> None:
        async with self._db.transaction() as conn:
            session_id = await self._active_session_id(conn)
            await conn.execute(
                "DELETE FROM queue_items WHERE session_id = ? AND item_type = ?",
                (session_id, QueueItemTypes.HISTORY),
            )
            await conn.execute(
                "UPDATE sessions SET history_index = ? WHERE id = ?",
                (HISTORY_TIP_INDEX, session_id),
            )

    async def move_all_history_to_queue(self) -> None:
        async with self._db.transaction() as conn:
            session_id = await self._active_session_id(conn)
            queue_max = await self._max_position(conn, session_id, QueueItemTypes.QUEUE)

            cursor = await conn.execute(
                """
                SELECT id FROM queue_items
                WHERE session_id = ? AND item_type = ?
                ORDER BY position ASC
                """,
                (session_id, QueueItemTypes.HISTORY),
            )
            history_ids = [row["id"] for row in await cursor.fetchall()]

            for rank, item_id in enumerate(history_ids):
                await conn.execute(
                    """
                    UPDATE queue_items
                    SET item_type = ?, position = ?, played_at = NULL
                    WHERE id = ?
                    """,
                    (QueueItemTypes.QUEUE, queue_max + 1 + rank, item_id),
                )

            await conn.execute(
                "UPDATE sessions SET history_index = ? WHERE id = ?",
                (HISTORY_TIP_INDEX, session_id),
            )

    # === Helpers ===

    @staticmethod
    async def _active_session_id(conn: aiosqlite.Connection) -> int:
        cursor = await conn.execute("SELECT id FROM sessions WHERE is_active = 1")
        row = await cursor.fetchone()
        if row is None:
            raise EntityNotFoundError("Session", "active", "No active session")
        return row["id"]

    @staticmethod
    async def _max_position(conn: aiosqlite.Connection, session_id: int, item_type: str) -> int:
        """Highest position of *item_type*, ``-1`` when there are none."""
        cursor = await conn.execute(
            """
            SELECT COALESCE(MAX(position), -1) FROM queue_items
            WHERE session_id = ? AND item_type = ?
            """,
            (session_id, item_type),
        )
        row = await cursor.fetchone()
        return row[0]

    @staticmethod
    async def _position_of(
        conn: aiosqlite.Connection, session_id: int, entry_id: str, item_type: str
    ) -> int:
        cursor = await conn.execute(
            "SELECT position FROM queue_items WHERE id = ? AND session_id = ? AND item_type = ?",
            (entry_id, session_id, item_type),
        )
        row = await cursor.fetchone()
        if row is None:
            raise EntityNotFoundError("QueueItem", entry_id)
        return row["position"]

    async def _insert(
        self,
        conn: aiosqlite.Connection,
        session_id: int,
        entry: QueueEntry,
        item_type: str,
        position: int,
    ) -> None:
        max_position = await self._max_position(conn, session_id, item_type)
        position = max(0, min(position, max_position + 1))

        await conn.execute(
            """
            UPDATE queue_items SET position = position + 1
            WHERE session_id = ? AND item_type = ? AND position >= ?
            """,
            (session_id, item_type, position),
        )

        track = entry.track
        played_at = UtcDateTime.now().iso if item_type == QueueItemTypes.HISTORY else None
        await conn.execute(
            """
            INSERT INTO queue_items (
                id, session_id, item_type, video_id, title, artist, duration,
                thumbnail_url, source, youtube_id, file_path, position, added_at, played_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.id,
                session_id,
                item_type,
                track.id,
                track.title,
                track.artist,
                track.duration_seconds,
                track.thumbnail_url,
                track.source.value,
                track.youtube_id,
                track.file_path,
                position,
                UtcDateTime(entry.added_at).iso,
                played_at,
            ),
        )

    @staticmethod
    async def _renumber(conn: aiosqlite.Connection, session_id: int, item_type: str) -> None:
        cursor = await conn.execute(
            """
            SELECT id FROM queue_items
            WHERE session_id = ? AND item_type = ?
            ORDER BY position ASC
            """,
            (session_id, item_type),
        )
        for position, row in enumerate(await cursor.fetchall()):
            await conn.execute(
                "UPDATE queue_items SET position = ? WHERE id = ?",
                (position, row["id"]),
            )

    @staticmethod
    def _row_to_entry(row: dict[str, Any]) -> QueueEntry:
        track = Track(
            id=row["video_id"],
            title=row["title"],
            artist=row["artist"],
            duration_seconds=row["duration"],
            thumbnail_url=row["thumbnail_url"],
            source=TrackSource(row["source"]),
            youtube_id=row["youtube_id"],
            file_path=row["file_path"],
        )
        return QueueEntry(
            id=row["id"],
            track=track,
            added_at=UtcDateTime.from_iso(row["added_at"]).dt,
        )
