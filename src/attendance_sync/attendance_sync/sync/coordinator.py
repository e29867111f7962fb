from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, List, Tuple

from ..core.constants import NO_NETWORK_MESSAGE
from ..core.enums import SyncEntityType
from ..network.monitor import NetworkMonitor
from .attendance_sync import AttendanceSyncService
from .model import PushResult, QueueDrainResult, SyncQueueItem, SyncResult
from .profile_sync import ProfileSyncService
from .queue_service import SyncQueue
from .settings_sync import SettingsSyncService

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """Push every domain, then pull every domain, then drain the retry queue.

    Domains are isolated: one failing push is recorded and the rest still run.
    Pull failures are logged only; stale local data is acceptable.
    """

    def __init__(
        self,
        attendance: AttendanceSyncService,
        profile: ProfileSyncService,
        settings: SettingsSyncService,
        queue: SyncQueue,
        network: NetworkMonitor,
    ):
        self._attendance = attendance
        self._profile = profile
        self._settings = settings
        self._queue = queue
        self._network = network
        self._single_push: Dict[str, Callable[[SyncQueueItem], Awaitable[bool]]] = {
            SyncEntityType.PROFILE.value: profile.push_one,
            SyncEntityType.ATTENDANCE.value: attendance.push_one,
            SyncEntityType.SETTINGS.value: settings.push_one,
        }

    async def sync_all(self, email: str, user_id: str) -> SyncResult:
        if not await self._network.is_connected():
            logger.info("Sync skipped: offline")
            return SyncResult(success=False, errors=[NO_NETWORK_MESSAGE])

        result = await self.sync_push_only(email, user_id)
        push_ok = result.success
        await self.sync_pull_only(email, user_id)
        result.success = push_ok and not result.errors
        logger.info(
            "Sync finished: success=%s attendance=%s profile=%s settings=%s",
            result.success, result.attendance, result.profile, result.settings,
        )
        return result

    async def sync_push_only(self, email: str, user_id: str) -> SyncResult:
        result = SyncResult(success=True)
        if not await self._network.is_connected():
            result.success = False
            result.errors.append(NO_NETWORK_MESSAGE)
            return result

        phases: List[Tuple[str, Callable[[], Awaitable[PushResult]]]] = [
            ("Attendance", lambda: self._attendance.push_all_unsynced(user_id)),
            ("Profile", lambda: self._profile.push_all_unsynced(email)),
            ("Settings", lambda: self._settings.push_all_unsynced(email)),
        ]
        for name, push in phases:
            try:
                setattr(result, name.lower(), await push())
            except Exception as exc:
                logger.error("%s push failed", name, exc_info=True)
                result.errors.append(f"{name} sync error: {exc}")
                result.success = False
        return result

    async def sync_pull_only(self, email: str, user_id: str) -> None:
        if not await self._network.is_connected():
            logger.info("Pull skipped: offline")
            return

        phases: List[Tuple[str, Callable[[], Awaitable[object]]]] = [
            ("Attendance", lambda: self._attendance.pull_from_server(user_id)),
            ("Profile", lambda: self._profile.pull_from_server(email)),
            ("Settings", lambda: self._settings.pull_from_server(email)),
        ]
        for name, pull in phases:
            try:
                await pull()
            except Exception:
                logger.error("%s pull failed", name, exc_info=True)

    async def process_sync_queue(self) -> QueueDrainResult:
        if not await self._network.is_connected():
            logger.debug("Queue drain skipped: offline")
            return QueueDrainResult()

        processed = synced = retried = dropped = 0
        for item in await self._queue.drainable_pending_items():
            processed += 1
            if self._queue.is_exhausted(item):
                logger.warning("Dropping %s after %s attempts", item.id, item.attempts)
                await self._queue.mark_synced(item.id)
                dropped += 1
                continue

            push = self._single_push.get(item.type)
            if push is None:
                logger.warning("Dropping %s: unknown entity type %r", item.id, item.type)
                await self._queue.mark_synced(item.id)
                dropped += 1
                continue

            try:
                ok = await push(item)
            except Exception:
                logger.error("Queue item %s raised during push", item.id, exc_info=True)
                ok = False

            if ok:
                await self._queue.mark_synced(item.id)
                synced += 1
            else:
                await self._queue.increment_attempts(item.id)
                retried += 1

        if processed:
            logger.info(
                "Queue drain: %s processed, %s synced, %s retried, %s dropped", processed, synced, retried, dropped
            )
        return QueueDrainResult(processed=processed, synced=synced, retried=retried, dropped=dropped)
