from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.sqlite_base import fetchall, fetchone, run_in_transaction
from .model import SyncQueueItem
from .queue_repository import SyncQueueRepository

_COLUMNS = "id, type, entityId, property, operation, data, timestamp, attempts, nextRetryAt, createdAt"


class SQLiteSyncQueueRepository(SyncQueueRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def upsert(self, item: SyncQueueItem) -> None:
        def work(cur) -> None:
            cur.execute(
                """
                DELETE FROM sync_queue
                WHERE type=? AND entityId=? AND COALESCE(property, '')=COALESCE(?, '') AND id<>?
                """,
                (item.type, item.entity_id, item.property, item.id),
            )
            cur.execute(
                f"INSERT OR REPLACE INTO sync_queue({_COLUMNS}) VALUES(?,?,?,?,?,?,?,?,?,?)",
                item.to_row(),
            )

        await run_in_transaction(self._conn_factory, work)

    async def get(self, item_id: str) -> Optional[SyncQueueItem]:
        def work(cur) -> Optional[SyncQueueItem]:
            cur.execute(f"SELECT {_COLUMNS} FROM sync_queue WHERE id=?", (item_id,))
            row = fetchone(cur)
            return SyncQueueItem.from_row(row) if row else None

        return await run_in_transaction(self._conn_factory, work)

    async def list_due(self, now: int, *, entity_type: Optional[str] = None) -> Sequence[SyncQueueItem]:
        def work(cur) -> Sequence[SyncQueueItem]:
            if entity_type is None:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM sync_queue WHERE nextRetryAt <= ? ORDER BY nextRetryAt ASC",
                    (int(now),),
                )
            else:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM sync_queue
                    WHERE nextRetryAt <= ? AND type=?
                    ORDER BY nextRetryAt ASC
                    """,
                    (int(now), entity_type),
                )
            return [SyncQueueItem.from_row(r) for r in fetchall(cur)]

        return await run_in_transaction(self._conn_factory, work)

    async def find(self, entity_type: str, entity_id: str, prop: Optional[str]) -> Optional[SyncQueueItem]:
        def work(cur) -> Optional[SyncQueueItem]:
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM sync_queue
                WHERE type=? AND entityId=? AND COALESCE(property, '')=COALESCE(?, '')
                ORDER BY timestamp DESC LIMIT 1
                """,
                (entity_type, entity_id, prop),
            )
            row = fetchone(cur)
            return SyncQueueItem.from_row(row) if row else None

        return await run_in_transaction(self._conn_factory, work)

    async def delete(self, item_id: str) -> bool:
        def work(cur) -> bool:
            cur.execute("DELETE FROM sync_queue WHERE id=?", (item_id,))
            return cur.rowcount > 0

        return await run_in_transaction(self._conn_factory, work)

    async def delete_for(self, entity_type: str, entity_id: str, prop: Optional[str]) -> int:
        def work(cur) -> int:
            cur.execute(
                "DELETE FROM sync_queue WHERE type=? AND entityId=? AND COALESCE(property, '')=COALESCE(?, '')",
                (entity_type, entity_id, prop),
            )
            return cur.rowcount

        return await run_in_transaction(self._conn_factory, work)

    async def increment_attempts(
        self, item_id: str, *, next_retry_at_for: Callable[[int], int]
    ) -> Optional[SyncQueueItem]:
        def work(cur) -> Optional[SyncQueueItem]:
            cur.execute(f"SELECT {_COLUMNS} FROM sync_queue WHERE id=?", (item_id,))
            row = fetchone(cur)
            if not row:
                return None
            current = SyncQueueItem.from_row(row)
            attempts = current.attempts + 1
            next_retry_at = next_retry_at_for(attempts)
            cur.execute(
                "UPDATE sync_queue SET attempts=?, nextRetryAt=? WHERE id=?",
                (attempts, next_retry_at, item_id),
            )
            return replace(current, attempts=attempts, next_retry_at=next_retry_at)

        return await run_in_transaction(self._conn_factory, work)

    async def count(self) -> int:
        def work(cur) -> int:
            cur.execute("SELECT COUNT(*) AS n FROM sync_queue")
            row = fetchone(cur)
            return int(row["n"]) if row else 0

        return await run_in_transaction(self._conn_factory, work)

    async def clear(self) -> None:
        def work(cur) -> None:
            cur.execute("DELETE FROM sync_queue")

        await run_in_transaction(self._conn_factory, work)
