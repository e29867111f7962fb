from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.attendance_sync.attendance_sync.attendance.sqlite_attendance_repository import SQLiteAttendanceRepository
from src.attendance_sync.attendance_sync.database.bootstrap import create_schema
from src.attendance_sync.attendance_sync.database.connection import DBConfig, DatabaseConnection
from src.attendance_sync.attendance_sync.network.monitor import NetworkMonitor
from src.attendance_sync.attendance_sync.profile.sqlite_profile_repository import SQLiteProfileRepository
from src.attendance_sync.attendance_sync.sync.queue_service import SyncQueue
from src.attendance_sync.attendance_sync.sync.sqlite_queue_repository import SQLiteSyncQueueRepository
from src.attendance_sync.attendance_sync.user_settings.sqlite_settings_repository import SQLiteSettingsRepository

from tests.fakes import FakeServerApi


class Clock:
    """Settable millisecond clock."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


@pytest.fixture
def fixed_now() -> datetime:
    # 11:00 IST
    return datetime(2025, 1, 15, 5, 30, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> Clock:
    return Clock(1_000_000)


@pytest.fixture
def conn():
    connection = DatabaseConnection(DBConfig(path=":memory:"))
    create_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def attendance_repo(conn) -> SQLiteAttendanceRepository:
    return SQLiteAttendanceRepository(conn)


@pytest.fixture
def profile_repo(conn) -> SQLiteProfileRepository:
    return SQLiteProfileRepository(conn)


@pytest.fixture
def settings_repo(conn) -> SQLiteSettingsRepository:
    return SQLiteSettingsRepository(conn)


@pytest.fixture
def sync_queue(conn, clock) -> SyncQueue:
    return SyncQueue(SQLiteSyncQueueRepository(conn), clock=clock)


@pytest.fixture
def network() -> NetworkMonitor:
    return NetworkMonitor(initially_connected=True)


@pytest.fixture
def server_api() -> FakeServerApi:
    return FakeServerApi()
