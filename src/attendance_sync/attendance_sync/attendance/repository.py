from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    async def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        """Store ``record``; an existing row with the same timestamp wins and is returned."""

        raise NotImplementedError

    async def get(self, timestamp: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    async def list_for_user(self, user_id: str, *, newest_first: bool = True) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    async def list_for_user_between(
        self, user_id: str, *, start_date: str, end_date: str
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    async def list_unsynced(self, user_id: str) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    async def mark_synced(self, timestamp: int, server_timestamp: Optional[int] = None) -> bool:
        raise NotImplementedError

    async def latest_for_user(self, user_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError
