from __future__ import annotations

import logging
import sqlite3
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.schema import ATTENDANCE_COLUMNS
from ..database.sqlite_base import fetchall, fetchone, run_in_transaction
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

_COLUMNS = ", ".join(ATTENDANCE_COLUMNS)
_PLACEHOLDERS = ",".join("?" for _ in ATTENDANCE_COLUMNS)


class SQLiteAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        def work(cur) -> AttendanceRecord:
            cur.execute(f"SELECT {_COLUMNS} FROM attendance WHERE Timestamp=?", (int(record.timestamp),))
            existing = fetchone(cur)
            if existing:
                return AttendanceRecord.from_row(existing)
            cur.execute(f"INSERT INTO attendance({_COLUMNS}) VALUES({_PLACEHOLDERS})", record.to_row())
            return record

        try:
            return await run_in_transaction(self._conn_factory, work)
        except sqlite3.IntegrityError:
            existing_record = await self.get(record.timestamp)
            if existing_record is None:
                raise
            logger.warning("Duplicate attendance insert at %s resolved to existing row", record.timestamp)
            return existing_record

    async def get(self, timestamp: int) -> Optional[AttendanceRecord]:
        def work(cur) -> Optional[AttendanceRecord]:
            cur.execute(f"SELECT {_COLUMNS} FROM attendance WHERE Timestamp=?", (int(timestamp),))
            row = fetchone(cur)
            return AttendanceRecord.from_row(row) if row else None

        return await run_in_transaction(self._conn_factory, work)

    async def list_for_user(self, user_id: str, *, newest_first: bool = True) -> Sequence[AttendanceRecord]:
        order = "DESC" if newest_first else "ASC"

        def work(cur) -> Sequence[AttendanceRecord]:
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance WHERE UserID=? ORDER BY Timestamp {order}",
                (str(user_id),),
            )
            return [AttendanceRecord.from_row(r) for r in fetchall(cur)]

        return await run_in_transaction(self._conn_factory, work)

    async def list_for_user_between(
        self, user_id: str, *, start_date: str, end_date: str
    ) -> Sequence[AttendanceRecord]:
        def work(cur) -> Sequence[AttendanceRecord]:
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance
                WHERE UserID=? AND COALESCE(LinkedEntryDate, DateOfPunch) BETWEEN ? AND ?
                ORDER BY Timestamp ASC
                """,
                (str(user_id), start_date, end_date),
            )
            return [AttendanceRecord.from_row(r) for r in fetchall(cur)]

        return await run_in_transaction(self._conn_factory, work)

    async def list_unsynced(self, user_id: str) -> Sequence[AttendanceRecord]:
        def work(cur) -> Sequence[AttendanceRecord]:
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance
                WHERE UserID=? AND IsSynced='N'
                ORDER BY Timestamp ASC
                """,
                (str(user_id),),
            )
            return [AttendanceRecord.from_row(r) for r in fetchall(cur)]

        return await run_in_transaction(self._conn_factory, work)

    async def mark_synced(self, timestamp: int, server_timestamp: Optional[int] = None) -> bool:
        def work(cur) -> bool:
            cur.execute(
                """
                UPDATE attendance
                SET IsSynced='Y', ServerTimestamp=COALESCE(?, ServerTimestamp, Timestamp)
                WHERE Timestamp=?
                """,
                (server_timestamp, int(timestamp)),
            )
            return cur.rowcount > 0

        return await run_in_transaction(self._conn_factory, work)

    async def latest_for_user(self, user_id: str) -> Optional[AttendanceRecord]:
        def work(cur) -> Optional[AttendanceRecord]:
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance WHERE UserID=? ORDER BY Timestamp DESC LIMIT 1",
                (str(user_id),),
            )
            row = fetchone(cur)
            return AttendanceRecord.from_row(row) if row else None

        return await run_in_transaction(self._conn_factory, work)
