"""SQLite implementation of the session repository."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from karaoke_companion.domain.session.entities import HostedSessionStatus, Session
from karaoke_companion.domain.session.repository import SessionRepository
from karaoke_companion.domain.shared.constants import SettingKeys
from karaoke_companion.domain.shared.datetime_utils import UtcDateTime
from karaoke_companion.domain.shared.exceptions import EntityNotFoundError, OwnershipConflictError
from karaoke_companion.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ..database import Database

logger = logging.getLogger(__name__)


class SQLiteSessionRepository(SessionRepository):
    def __init__(self, database: Database) -> None:
        self._db = database

    async def get_active(self) -> Session | None:
        row = await self._db.fetch_one(
            "SELECT * FROM sessions WHERE is_active = 1 ORDER BY id DESC LIMIT 1"
        )
        return self._row_to_session(row) if row else None

    async def get(self, session_id: int) -> Session | None:
        row = await self._db.fetch_one("SELECT * FROM sessions WHERE id = ?", (session_id,))
        return self._row_to_session(row) if row else None

    async def start(self, name: str | None = None) -> Session:
        now = UtcDateTime.now().iso
        async with self._db.transaction() as conn:
            await conn.execute(
                "UPDATE sessions SET is_active = 0, ended_at = ? WHERE is_active = 1",
                (now,),
            )
            cursor = await conn.execute(
                "INSERT INTO sessions (name, started_at, is_active) VALUES (?, ?, 1)",
                (name, now),
            )
            session_id = cursor.lastrowid

        session = await self.get(session_id)
        if session is None:
            raise EntityNotFoundError("Session", session_id)
        return session

    async def end_active(self) -> None:
        async with self._db.transaction() as conn:
            cursor = await conn.execute("SELECT id FROM sessions WHERE is_active = 1")
            row = await cursor.fetchone()

            if row is not None:
                session_id = row["id"]
                cursor = await conn.execute(
                    """
                    SELECT EXISTS(
                        SELECT 1 FROM queue_items WHERE session_id = ?
                        UNION
                        SELECT 1 FROM session_singers WHERE session_id = ?
                    )
                    """,
                    (session_id, session_id),
                )
                has_content = bool((await cursor.fetchone())[0])

                if has_content:
                    await conn.execute(
                        "UPDATE sessions SET is_active = 0, ended_at = ? WHERE id = ?",
                        (UtcDateTime.now().iso, session_id),
                    )
                else:
                    await conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))

            await conn.execute(
                """
                DELETE FROM singers
                WHERE is_persistent = 0
                  AND id NOT IN (SELECT singer_id FROM session_singers)
                """
            )
            await conn.execute(
                "DELETE FROM queue_singers WHERE queue_item_id NOT IN (SELECT id FROM queue_items)"
            )

    async def switch_to(self, session_id: int) -> Session:
        async with self._db.transaction() as conn:
            cursor = await conn.execute("SELECT 1 FROM sessions WHERE id = ?", (session_id,))
            if await cursor.fetchone() is None:
                raise EntityNotFoundError("Session", session_id)

            await conn.execute(
                "UPDATE sessions SET is_active = 0, ended_at = ? WHERE is_active = 1 AND id != ?",
                (UtcDateTime.now().iso, session_id),
            )
            await conn.execute(
                "UPDATE sessions SET is_active = 1, ended_at = NULL WHERE id = ?",
                (session_id,),
            )

        session = await self.get(session_id)
        if session is None:
            raise EntityNotFoundError("Session", session_id)
        return session

    async def rename(self, session_id: int, name: str | None) -> Session:
        cursor = await self._db.execute(
            "UPDATE sessions SET name = ? WHERE id = ?",
            (name, session_id),
        )
        if cursor.rowcount == 0:
            raise EntityNotFoundError("Session", session_id)

        session = await self.get(session_id)
        if session is None:
            raise EntityNotFoundError("Session", session_id)
        return session

    async def get_recent(self, limit: int = 10) -> list[Session]:
        rows = await self._db.fetch_all(
            """
            SELECT * FROM sessions
            WHERE is_active = 0
            ORDER BY COALESCE(ended_at, started_at) DESC, id DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [self._row_to_session(row) for row in rows]

    async def set_hosted_session(
        self,
        session_id: int,
        hosted_session_id: str,
        user_id: str,
        status: HostedSessionStatus,
    ) -> None:
        async with self._db.transaction() as conn:
            # Ownership check and write are one statement.
            cursor = await conn.execute(
                """
                UPDATE sessions
                SET hosted_session_id = ?,
                    hosted_by_user_id = ?,
                    hosted_session_status = ?
                WHERE id = ?
                  AND (
                    hosted_by_user_id IS NULL
                    OR hosted_by_user_id = ?
                    OR hosted_session_status IS NULL
                    OR hosted_session_status NOT IN ('active', 'paused')
                  )
                """,
                (hosted_session_id, user_id, status.value, session_id, user_id),
            )
            if cursor.rowcount == 0:
                cursor = await conn.execute("SELECT 1 FROM sessions WHERE id = ?", (session_id,))
                if await cursor.fetchone() is None:
                    raise EntityNotFoundError("Session", session_id)
                raise OwnershipConflictError(session_id)

        logger.debug(
            LogTemplates.SESSION_HOSTED_FIELDS_UPDATED,
            session_id,
            hosted_session_id,
            user_id,
            status.value,
        )

    async def update_hosted_status(self, session_id: int, status: HostedSessionStatus) -> None:
        cursor = await self._db.execute(
            """
            UPDATE sessions SET hosted_session_status = ?
            WHERE id = ? AND hosted_session_id IS NOT NULL
            """,
            (status.value, session_id),
        )
        if cursor.rowcount == 0:
            raise EntityNotFoundError("Session", session_id)

    async def get_persisted_hosted_id(self) -> str | None:
        row = await self._db.fetch_one(
            "SELECT value FROM settings WHERE key = ?",
            (SettingKeys.HOSTED_SESSION_ID,),
        )
        return row["value"] if row else None

    async def set_persisted_hosted_id(self, hosted_session_id: str) -> None:
        await self._db.execute(
            """
            INSERT INTO settings (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (SettingKeys.HOSTED_SESSION_ID, hosted_session_id),
        )

    async def clear_persisted_hosted_id(self) -> None:
        await self._db.execute(
            "DELETE FROM settings WHERE key = ?",
            (SettingKeys.HOSTED_SESSION_ID,),
        )

    @staticmethod
    def _row_to_session(row: dict[str, Any]) -> Session:
        status = row["hosted_session_status"]
        return Session(
            id=row["id"],
            name=row["name"],
            started_at=UtcDateTime.from_iso(row["started_at"]).dt,
            ended_at=UtcDateTime.from_iso(row["ended_at"]).dt if row["ended_at"] else None,
            is_active=bool(row["is_active"]),
            hosted_session_id=row["hosted_session_id"],
            hosted_by_user_id=row["hosted_by_user_id"],
            hosted_session_status=HostedSessionStatus(status) if status else None,
        )
