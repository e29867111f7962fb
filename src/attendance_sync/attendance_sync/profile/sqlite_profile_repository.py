from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..core.constants import PROFILE_PROPERTIES
from ..database.connection import DatabaseConnection
from ..database.sqlite_base import fetchone, run_in_transaction, safe_int, to_json
from .model import Profile
from .repository import ProfileRepository

logger = logging.getLogger(__name__)


def _known(values: Mapping[str, Any]) -> dict:
    return {k: v for k, v in values.items() if k in PROFILE_PROPERTIES and v is not None}


class SQLiteProfileRepository(ProfileRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def get(self, email: str) -> Optional[Profile]:
        def work(cur) -> Optional[Profile]:
            cur.execute("SELECT * FROM profile WHERE email=?", (email,))
            row = fetchone(cur)
            return Profile.from_row(row) if row else None

        return await run_in_transaction(self._conn_factory, work)

    async def save_properties(self, email: str, changes: Mapping[str, Any], *, now: int) -> None:
        values = {k: to_json(v) for k, v in changes.items() if k in PROFILE_PROPERTIES}

        def work(cur) -> None:
            cur.execute("SELECT email FROM profile WHERE email=?", (email,))
            if fetchone(cur) is None:
                columns = ", ".join(["email", *values, "lastUpdatedAt", "isSynced", "createdAt", "updatedAt"])
                placeholders = ",".join("?" for _ in range(len(values) + 5))
                cur.execute(
                    f"INSERT INTO profile({columns}) VALUES({placeholders})",
                    (email, *values.values(), now, 0, now, now),
                )
                return
            assignments = "".join(f"{col}=?, " for col in values)
            cur.execute(
                f"UPDATE profile SET {assignments}lastUpdatedAt=?, isSynced=0, updatedAt=? WHERE email=?",
                (*values.values(), now, now, email),
            )

        await run_in_transaction(self._conn_factory, work)

    async def mark_synced(self, email: str, *, server_last_synced_at: Optional[int], now: int) -> None:
        def work(cur) -> None:
            cur.execute(
                """
                UPDATE profile
                SET isSynced=1, server_lastSyncedAt=COALESCE(?, server_lastSyncedAt), updatedAt=?
                WHERE email=?
                """,
                (server_last_synced_at, now, email),
            )

        await run_in_transaction(self._conn_factory, work)

    async def merge_server_profile(
        self, email: str, values: Mapping[str, Any], *, server_last_synced_at: int, now: int
    ) -> bool:
        incoming = {k: to_json(v) for k, v in _known(values).items()}

        def work(cur) -> bool:
            cur.execute("SELECT lastUpdatedAt FROM profile WHERE email=?", (email,))
            row = fetchone(cur)
            if row is None:
                columns = ", ".join(["email", *incoming, "server_lastSyncedAt", "isSynced", "createdAt", "updatedAt"])
                placeholders = ",".join("?" for _ in range(len(incoming) + 5))
                cur.execute(
                    f"INSERT INTO profile({columns}) VALUES({placeholders})",
                    (email, *incoming.values(), server_last_synced_at, 1, now, now),
                )
                return True

            last_updated_at = safe_int(row.get("lastUpdatedAt"))
            if last_updated_at is None or server_last_synced_at >= last_updated_at:
                assignments = "".join(f"{col}=?, " for col in incoming)
                cur.execute(
                    f"""
                    UPDATE profile
                    SET {assignments}server_lastSyncedAt=?, isSynced=1, updatedAt=?
                    WHERE email=?
                    """,
                    (*incoming.values(), server_last_synced_at, now, email),
                )
                return True

            cur.execute(
                "UPDATE profile SET server_lastSyncedAt=?, updatedAt=? WHERE email=?",
                (server_last_synced_at, now, email),
            )
            return False

        applied = await run_in_transaction(self._conn_factory, work)
        if not applied:
            logger.info("Kept local profile edits for %s; server copy is older", email)
        return applied
