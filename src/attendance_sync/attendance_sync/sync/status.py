from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..profile.model import UnsyncedProfileProperty
from ..user_settings.model import Setting
from .attendance_sync import AttendanceSyncService
from .profile_sync import ProfileSyncService
from .queue_service import SyncQueue
from .settings_sync import SettingsSyncService


@dataclass(frozen=True)
class UnsyncedItems:
    profile: List[UnsyncedProfileProperty] = field(default_factory=list)
    attendance: Sequence[AttendanceRecord] = ()
    settings: Sequence[Setting] = ()


@dataclass(frozen=True)
class SyncSummary:
    total: int
    profile: int
    attendance: int
    settings: int
    queue_size: int
    last_sync_at: Optional[int]


class SyncStatusService:
    """Read-only view of what is still waiting to reach the server."""

    def __init__(
        self,
        attendance: AttendanceSyncService,
        profile: ProfileSyncService,
        settings: SettingsSyncService,
        queue: SyncQueue,
    ):
        self._attendance = attendance
        self._profile = profile
        self._settings = settings
        self._queue = queue

    async def get_all_unsynced(self, email: str, user_id: str) -> UnsyncedItems:
        return UnsyncedItems(
            profile=await self._profile.get_unsynced(email),
            attendance=await self._attendance.get_unsynced(user_id),
            settings=await self._settings.get_unsynced(email),
        )

    async def get_summary(self, email: str, user_id: str) -> SyncSummary:
        items = await self.get_all_unsynced(email, user_id)
        status = await self._profile.sync_status(email)
        profile_count = len(items.profile)
        attendance_count = len(items.attendance)
        settings_count = len(items.settings)
        return SyncSummary(
            total=profile_count + attendance_count + settings_count,
            profile=profile_count,
            attendance=attendance_count,
            settings=settings_count,
            queue_size=await self._queue.size(),
            last_sync_at=status.server_last_synced_at,
        )
