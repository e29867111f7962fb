from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .api.client import ApiClient, TokenProvider
from .api.queue import ApiRequestQueue
from .api.server_api import ServerApi
from .attendance.factory import DayStatusStrategyFactory
from .attendance.service import AttendanceService
from .attendance.sqlite_attendance_repository import SQLiteAttendanceRepository
from .core import constants
from .database.connection import DBConfig, DatabaseConnection
from .network.monitor import HttpReachabilityProbe, NetworkMonitor
from .profile.sqlite_profile_repository import SQLiteProfileRepository
from .sync.attendance_sync import AttendanceSyncService
from .sync.background import BackgroundSyncService, SessionProvider
from .sync.coordinator import SyncCoordinator
from .sync.profile_sync import ProfileSyncService
from .sync.queue_service import SyncQueue
from .sync.retry import RetryPolicy
from .sync.settings_sync import SettingsSyncService
from .sync.sqlite_queue_repository import SQLiteSyncQueueRepository
from .sync.status import SyncStatusService
from .user_settings.sqlite_settings_repository import SQLiteSettingsRepository


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    attendance_repo: SQLiteAttendanceRepository
    profile_repo: SQLiteProfileRepository
    settings_repo: SQLiteSettingsRepository
    queue_repo: SQLiteSyncQueueRepository

    network: NetworkMonitor
    api_client: ApiClient
    api_queue: ApiRequestQueue
    server_api: ServerApi
    sync_queue: SyncQueue

    attendance_service: AttendanceService
    attendance_sync: AttendanceSyncService
    profile_sync: ProfileSyncService
    settings_sync: SettingsSyncService
    coordinator: SyncCoordinator
    sync_status: SyncStatusService
    background_sync: BackgroundSyncService


def build_container(
    *,
    db_config: dict,
    api_config: dict,
    retry_config: Optional[dict] = None,
    token_provider: Optional[TokenProvider] = None,
    network: Optional[NetworkMonitor] = None,
    session_provider: Optional[SessionProvider] = None,
    sync_interval_seconds: float = constants.DEFAULT_SYNC_INTERVAL_SECONDS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig(path=str(db_config.get("path", ":memory:"))))
    retry_config = retry_config or {}
    policy = RetryPolicy(
        initial_delay_ms=int(retry_config.get("initial_delay_ms", constants.RETRY_INITIAL_DELAY_MS)),
        max_delay_ms=int(retry_config.get("max_delay_ms", constants.RETRY_MAX_DELAY_MS)),
        max_attempts=int(retry_config.get("max_attempts", constants.RETRY_MAX_ATTEMPTS)),
    )

    attendance_repo = SQLiteAttendanceRepository(conn)
    profile_repo = SQLiteProfileRepository(conn)
    settings_repo = SQLiteSettingsRepository(conn)
    queue_repo = SQLiteSyncQueueRepository(conn)

    api_client = ApiClient(
        str(api_config["base_url"]),
        token_provider=token_provider,
        timeout=float(api_config.get("timeout", constants.DEFAULT_REQUEST_TIMEOUT_SECONDS)),
    )
    if network is None:
        reachability_url = api_config.get("reachability_url") or api_client.base_url
        network = NetworkMonitor(HttpReachabilityProbe(reachability_url))
    api_queue = ApiRequestQueue(
        api_client,
        cache_ttl_seconds=float(api_config.get("cache_ttl_seconds", constants.API_CACHE_TTL_SECONDS)),
        max_concurrent=int(api_config.get("max_concurrent", constants.API_MAX_CONCURRENT_REQUESTS)),
    )
    server_api = ServerApi(api_queue, settings_path=api_config.get("settings_path"))
    sync_queue = SyncQueue(queue_repo, policy=policy)

    attendance_service = AttendanceService(
        attendance_repo, profile_repo, strategy_factory=DayStatusStrategyFactory()
    )
    attendance_sync = AttendanceSyncService(attendance_repo, server_api, network, sync_queue)
    profile_sync = ProfileSyncService(profile_repo, server_api, network, sync_queue)
    settings_sync = SettingsSyncService(settings_repo, server_api, network, sync_queue)
    coordinator = SyncCoordinator(attendance_sync, profile_sync, settings_sync, sync_queue, network)
    sync_status = SyncStatusService(attendance_sync, profile_sync, settings_sync, sync_queue)
    background_sync = BackgroundSyncService(
        coordinator,
        network,
        session_provider or (lambda: None),
        interval_seconds=sync_interval_seconds,
    )

    return Container(
        conn=conn,
        attendance_repo=attendance_repo,
        profile_repo=profile_repo,
        settings_repo=settings_repo,
        queue_repo=queue_repo,
        network=network,
        api_client=api_client,
        api_queue=api_queue,
        server_api=server_api,
        sync_queue=sync_queue,
        attendance_service=attendance_service,
        attendance_sync=attendance_sync,
        profile_sync=profile_sync,
        settings_sync=settings_sync,
        coordinator=coordinator,
        sync_status=sync_status,
        background_sync=background_sync,
    )
