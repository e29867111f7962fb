from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from ..api.server_api import ServerApi
from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import api_timestamp_to_ticks
from ..common.validators import require_date_string
from ..core.enums import SyncEntityType, SyncOperation
from ..core.exceptions import DomainError
from ..network.monitor import NetworkMonitor
from .model import PushResult, SyncQueueItem
from .queue_service import SyncQueue

logger = logging.getLogger(__name__)

RecordsListener = Callable[[str, Sequence[AttendanceRecord]], None]


class AttendanceSyncService:
    """Pushes locally captured punches and merges the server's attendance days.

    The merge only adds or confirms rows. Local punches the server has not
    seen are never modified or removed.
    """

    def __init__(
        self,
        repo: AttendanceRepository,
        api: ServerApi,
        network: NetworkMonitor,
        queue: SyncQueue,
    ):
        self._repo = repo
        self._api = api
        self._network = network
        self._queue = queue
        self._listeners: List[RecordsListener] = []

    def add_change_listener(self, listener: RecordsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def get_unsynced(self, user_id: str) -> Sequence[AttendanceRecord]:
        return await self._repo.list_unsynced(user_id)

    async def mark_synced(self, timestamp: int, server_timestamp: Optional[int] = None) -> None:
        await self._repo.mark_synced(timestamp, server_timestamp)

    async def push_record(self, record: AttendanceRecord) -> bool:
        if not await self._network.is_connected():
            logger.debug("Offline; punch %s stays local", record.timestamp)
            return False

        payload = record.to_payload()
        send = self._api.punch_in if record.is_in else self._api.punch_out
        try:
            response = await send(payload)
        except DomainError as exc:
            logger.error(
                "Pushing punch %s (%s) failed: %s", record.timestamp, record.punch_direction.value, exc
            )
            return False

        server_ts = api_timestamp_to_ticks(response.get("timestamp") or response.get("Timestamp"))
        await self.mark_synced(record.timestamp, server_ts if server_ts is not None else record.timestamp)
        await self._queue.discard(SyncEntityType.ATTENDANCE, str(record.timestamp))
        logger.debug("Punch %s synced (server %s)", record.timestamp, server_ts)
        return True

    async def push_one(self, item: SyncQueueItem) -> bool:
        """Retry a queued punch. Already-synced or vanished rows count as done."""
        try:
            timestamp = int(item.entity_id)
        except ValueError:
            logger.warning("Queue item %s has no usable timestamp; dropping", item.id)
            return True
        record = await self._repo.get(timestamp)
        if record is None:
            logger.warning("Queued punch %s is not in the store; dropping", timestamp)
            return True
        if record.synced:
            return True
        return await self.push_record(record)

    async def push_all_unsynced(self, user_id: str) -> PushResult:
        success = failed = 0
        for record in await self.get_unsynced(user_id):
            if await self.push_record(record):
                success += 1
                continue
            failed += 1
            await self._queue.ensure_queued(
                SyncEntityType.ATTENDANCE,
                str(record.timestamp),
                data={"userId": record.user_id, "direction": record.punch_direction.value},
                operation=SyncOperation.CREATE,
                timestamp=record.timestamp,
            )
        if success or failed:
            logger.info("Attendance push for %s: %s synced, %s failed", user_id, success, failed)
        return PushResult(success=success, failed=failed)

    async def merge_server_data(self, user_id: str, days: Iterable[Mapping[str, Any]]) -> int:
        """Merge server attendance days into the store. Returns rows inserted."""
        local: Dict[int, AttendanceRecord] = {r.timestamp: r for r in await self._repo.list_for_user(user_id)}
        inserted = 0
        for day in days:
            day_date = day.get("dateOfPunch") or day.get("DateOfPunch")
            for raw in day.get("records") or []:
                incoming = AttendanceRecord.from_server(raw, user_id=user_id, day_date=day_date)
                if incoming is None:
                    logger.warning("Skipping server attendance record without timestamp on %s", day_date)
                    continue
                existing = local.get(incoming.timestamp)
                if existing is not None:
                    if not existing.synced:
                        await self.mark_synced(existing.timestamp, incoming.timestamp)
                    continue
                stored = await self._repo.insert(incoming)
                if stored is incoming:
                    inserted += 1
                elif not stored.synced:
                    # Lost an insert race to a local punch at the same instant.
                    await self.mark_synced(stored.timestamp, incoming.timestamp)
                local[incoming.timestamp] = stored
        return inserted

    async def pull_from_server(
        self, user_id: str, *, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> Optional[Sequence[AttendanceRecord]]:
        if start_date:
            require_date_string(start_date, "start_date")
        if end_date:
            require_date_string(end_date, "end_date")
        if not await self._network.is_connected():
            logger.debug("Offline; skipping attendance pull for %s", user_id)
            return None
        days = await self._api.get_attendance_days(start_date=start_date, end_date=end_date)
        inserted = await self.merge_server_data(user_id, days)
        records = await self._repo.list_for_user(user_id)
        logger.info("Attendance pull for %s: %s days, %s new rows", user_id, len(days), inserted)
        for listener in list(self._listeners):
            try:
                listener(user_id, records)
            except Exception:
                logger.error("Attendance change listener %r failed", listener, exc_info=True)
        return records
