"""SQLite implementation of the singer repository."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from karaoke_companion.domain.session.entities import Singer
from karaoke_companion.domain.session.repository import SingerRepository
from karaoke_companion.domain.shared.exceptions import EntityNotFoundError
from karaoke_companion.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ..database import Database

logger = logging.getLogger(__name__)


class SQLiteSingerRepository(SingerRepository):
    def __init__(self, database: Database) -> None:
        self._db = database

    # === Singers ===

    async def create(
        self, name: str, color: str, *, is_persistent: bool = False, online_id: str | None = None
    ) -> Singer:
        cursor = await self._db.execute(
            "INSERT INTO singers (name, color, is_persistent, online_id) VALUES (?, ?, ?, ?)",
            (name, color, int(is_persistent), online_id),
        )
        singer_id = cursor.lastrowid

        row = await self._db.fetch_one("SELECT * FROM singers WHERE id = ?", (singer_id,))
        if row is None:
            raise EntityNotFoundError("Singer", singer_id)
        return self._row_to_singer(row)

    async def get_all(self) -> list[Singer]:
        rows = await self._db.fetch_all("SELECT * FROM singers ORDER BY name COLLATE NOCASE, id")
        return [self._row_to_singer(row) for row in rows]

    async def delete(self, singer_id: int) -> None:
        # session_singers and queue_singers cascade; active_singer_id is set NULL
        await self._db.execute("DELETE FROM singers WHERE id = ?", (singer_id,))

    # === Session membership ===

    async def add_to_session(self, session_id: int, singer_id: int) -> None:
        await self._db.execute(
            "INSERT OR IGNORE INTO session_singers (session_id, singer_id) VALUES (?, ?)",
            (session_id, singer_id),
        )

    async def remove_from_session(self, session_id: int, singer_id: int) -> None:
        async with self._db.transaction() as conn:
            await conn.execute(
                "DELETE FROM session_singers WHERE session_id = ? AND singer_id = ?",
                (session_id, singer_id),
            )
            await conn.execute(
                """
                DELETE FROM queue_singers
                WHERE singer_id = ?
                  AND queue_item_id IN (SELECT id FROM queue_items WHERE session_id = ?)
                """,
                (singer_id, session_id),
            )
            await conn.execute(
                "UPDATE sessions SET active_singer_id = NULL WHERE id = ? AND active_singer_id = ?",
                (session_id, singer_id),
            )

    async def get_session_singers(self, session_id: int) -> list[Singer]:
        rows = await self._db.fetch_all(
            """
            SELECT s.* FROM singers s
            JOIN session_singers ss ON ss.singer_id = s.id
            WHERE ss.session_id = ?
            ORDER BY ss.joined_at ASC, s.id ASC
            """,
            (session_id,),
        )
        return [self._row_to_singer(row) for row in rows]

    # === Active singer ===

    async def get_active_singer_id(self, session_id: int) -> int | None:
        row = await self._db.fetch_one(
            "SELECT active_singer_id FROM sessions WHERE id = ?",
            (session_id,),
        )
        if row is None:
            return None
        return row["active_singer_id"]

    async def set_active_singer_id(self, session_id: int, singer_id: int | None) -> None:
        await self._db.execute(
            "UPDATE sessions SET active_singer_id = ? WHERE id = ?",
            (singer_id, session_id),
        )
        logger.debug(LogTemplates.ACTIVE_SINGER_SET, session_id, singer_id)

    # === Entry assignments ===

    async def assign_to_entry(self, entry_id: str, singer_id: int) -> None:
        await self._db.execute(
            """
            INSERT OR IGNORE INTO queue_singers (queue_item_id, singer_id, position)
            VALUES (
                ?, ?,
                COALESCE((SELECT MAX(position) + 1 FROM queue_singers WHERE queue_item_id = ?), 0)
            )
            """,
            (entry_id, singer_id, entry_id),
        )

    async def remove_from_entry(self, entry_id: str, singer_id: int) -> None:
        await self._db.execute(
            "DELETE FROM queue_singers WHERE queue_item_id = ? AND singer_id = ?",
            (entry_id, singer_id),
        )

    async def clear_entry(self, entry_id: str) -> None:
        await self._db.execute("DELETE FROM queue_singers WHERE queue_item_id = ?", (entry_id,))

    async def get_entry_singer_ids(self, entry_id: str) -> list[int]:
        rows = await self._db.fetch_all(
            """
            SELECT singer_id FROM queue_singers
            WHERE queue_item_id = ?
            ORDER BY position ASC, id ASC
            """,
            (entry_id,),
        )
        return [row["singer_id"] for row in rows]

    async def get_all_assignments(self, session_id: int) -> dict[str, list[int]]:
        rows = await self._db.fetch_all(
            """
            SELECT qs.queue_item_id, qs.singer_id FROM queue_singers qs
            JOIN queue_items qi ON qi.id = qs.queue_item_id
            WHERE qi.session_id = ?
            ORDER BY qs.queue_item_id, qs.position ASC, qs.id ASC
            """,
            (session_id,),
        )

        assignments: dict[str, list[int]] = {}
        for row in rows:
            assignments.setdefault(row["queue_item_id"], []).append(row["singer_id"])
        return assignments

    @staticmethod
    def _row_to_singer(row: dict[str, Any]) -> Singer:
        return Singer(
            id=row["id"],
            name=row["name"],
            color=row["color"],
            is_persistent=bool(row["is_persistent"]),
            online_id=row["online_id"],
        )
