from types import SimpleNamespace

import pytest

from src.attendance_sync.attendance_sync.sync.attendance_sync import AttendanceSyncService
from src.attendance_sync.attendance_sync.sync.coordinator import SyncCoordinator
from src.attendance_sync.attendance_sync.sync.profile_sync import ProfileSyncService
from src.attendance_sync.attendance_sync.sync.settings_sync import SettingsSyncService
from src.attendance_sync.attendance_sync.sync.status import SyncStatusService


@pytest.fixture
def sync_stack(attendance_repo, profile_repo, settings_repo, server_api, network, sync_queue, clock):
    attendance = AttendanceSyncService(attendance_repo, server_api, network, sync_queue)
    profile = ProfileSyncService(profile_repo, server_api, network, sync_queue, clock=clock)
    settings = SettingsSyncService(settings_repo, server_api, network, sync_queue, clock=clock)
    return SimpleNamespace(
        attendance=attendance,
        profile=profile,
        settings=settings,
        coordinator=SyncCoordinator(attendance, profile, settings, sync_queue, network),
        status=SyncStatusService(attendance, profile, settings, sync_queue),
    )
