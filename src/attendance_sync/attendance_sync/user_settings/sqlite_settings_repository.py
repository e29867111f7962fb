from __future__ import annotations

from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.sqlite_base import fetchall, fetchone, run_in_transaction, safe_int, to_json
from .model import Setting
from .repository import SettingsRepository

_COLUMNS = "key, value, isSynced, lastUpdatedAt, server_lastUpdatedAt, createdAt, updatedAt"


class SQLiteSettingsRepository(SettingsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def get(self, key: str) -> Optional[Setting]:
        def work(cur) -> Optional[Setting]:
            cur.execute(f"SELECT {_COLUMNS} FROM settings WHERE key=?", (key,))
            row = fetchone(cur)
            return Setting.from_row(row) if row else None

        return await run_in_transaction(self._conn_factory, work)

    async def list_all(self) -> Sequence[Setting]:
        def work(cur) -> Sequence[Setting]:
            cur.execute(f"SELECT {_COLUMNS} FROM settings ORDER BY key")
            return [Setting.from_row(r) for r in fetchall(cur)]

        return await run_in_transaction(self._conn_factory, work)

    async def list_unsynced(self) -> Sequence[Setting]:
        def work(cur) -> Sequence[Setting]:
            cur.execute(f"SELECT {_COLUMNS} FROM settings WHERE isSynced=0 ORDER BY lastUpdatedAt ASC")
            return [Setting.from_row(r) for r in fetchall(cur)]

        return await run_in_transaction(self._conn_factory, work)

    async def save(self, key: str, value: Any, *, now: int) -> None:
        def work(cur) -> None:
            cur.execute(
                """
                INSERT INTO settings(key, value, isSynced, lastUpdatedAt, createdAt, updatedAt)
                VALUES(?,?,0,?,?,?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value, isSynced=0, lastUpdatedAt=excluded.lastUpdatedAt,
                    updatedAt=excluded.updatedAt
                """,
                (key, to_json(value), now, now, now),
            )

        await run_in_transaction(self._conn_factory, work)

    async def mark_synced(self, key: str, *, server_last_updated_at: Optional[int], now: int) -> None:
        def work(cur) -> None:
            cur.execute(
                """
                UPDATE settings
                SET isSynced=1, server_lastUpdatedAt=COALESCE(?, server_lastUpdatedAt), updatedAt=?
                WHERE key=?
                """,
                (server_last_updated_at, now, key),
            )

        await run_in_transaction(self._conn_factory, work)

    async def merge_server_value(self, key: str, value: Any, *, server_last_updated_at: int, now: int) -> bool:
        def work(cur) -> bool:
            cur.execute("SELECT lastUpdatedAt FROM settings WHERE key=?", (key,))
            row = fetchone(cur)
            if row is None:
                cur.execute(
                    f"INSERT INTO settings({_COLUMNS}) VALUES(?,?,1,NULL,?,?,?)",
                    (key, to_json(value), server_last_updated_at, now, now),
                )
                return True
            last_updated_at = safe_int(row.get("lastUpdatedAt"))
            if last_updated_at is None or server_last_updated_at >= last_updated_at:
                cur.execute(
                    """
                    UPDATE settings
                    SET value=?, isSynced=1, server_lastUpdatedAt=?, updatedAt=?
                    WHERE key=?
                    """,
                    (to_json(value), server_last_updated_at, now, key),
                )
                return True
            cur.execute(
                "UPDATE settings SET server_lastUpdatedAt=?, updatedAt=? WHERE key=?",
                (server_last_updated_at, now, key),
            )
            return False

        return await run_in_transaction(self._conn_factory, work)
