from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from src.attendance_sync.attendance_sync.attendance.model import AttendanceRecord
from src.attendance_sync.attendance_sync.core.enums import PunchDirection, SyncFlag
from src.attendance_sync.attendance_sync.core.exceptions import ApiError, NetworkError


def ms(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> int:
    return int(datetime(year, month, day, hour, minute, tzinfo=timezone.utc).timestamp() * 1000)


def make_record(
    timestamp: int,
    direction: str = "IN",
    *,
    user_id: str = "u1",
    synced: bool = False,
    date_of_punch: Optional[str] = None,
    **extra: Any,
) -> AttendanceRecord:
    return AttendanceRecord(
        timestamp=timestamp,
        user_id=user_id,
        punch_direction=PunchDirection(direction),
        is_synced=SyncFlag.SYNCED if synced else SyncFlag.UNSYNCED,
        date_of_punch=date_of_punch or datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).strftime("%Y-%m-%d"),
        created_on=timestamp,
        **extra,
    )


class FakeServerApi:
    """In-memory stand-in for ServerApi that records every call."""

    def __init__(self, *, settings_enabled: bool = False):
        self.settings_enabled = settings_enabled
        self.punches: List[Dict[str, Any]] = []
        self.profile_updates: List[Dict[str, Any]] = []
        self.photo_uploads: List[Any] = []
        self.setting_pushes: List[Dict[str, Any]] = []
        self.days: List[Dict[str, Any]] = []
        self.profile: Dict[str, Any] = {}
        self.settings: Dict[str, Any] = {}
        self.fail_with: Optional[Exception] = None
        self.punch_response_timestamp: Any = None
        self.profile_last_synced_at: Any = "2025-01-15T05:00:00Z"
        self.days_calls: List[Dict[str, Any]] = []

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def punch_in(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._punch("IN", payload)

    async def punch_out(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._punch("OUT", payload)

    async def _punch(self, direction: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._maybe_fail()
        self.punches.append({"direction": direction, **payload})
        ts = self.punch_response_timestamp if self.punch_response_timestamp is not None else payload["timestamp"]
        return {"timestamp": ts}

    async def get_attendance_days(self, *, start_date: Optional[str] = None, end_date: Optional[str] = None):
        self._maybe_fail()
        self.days_calls.append({"start_date": start_date, "end_date": end_date})
        return list(self.days)

    async def update_profile(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        self._maybe_fail()
        self.profile_updates.append(dict(changes))
        return {"lastSyncedAt": self.profile_last_synced_at}

    async def upload_profile_photo(self, photo: Any) -> Dict[str, Any]:
        self._maybe_fail()
        self.photo_uploads.append(photo)
        return {"lastSyncedAt": self.profile_last_synced_at}

    async def get_profile(self) -> Dict[str, Any]:
        self._maybe_fail()
        return dict(self.profile)

    async def push_setting(self, key: str, value: Any) -> Dict[str, Any]:
        self._maybe_fail()
        self.setting_pushes.append({"key": key, "value": value})
        return {"lastUpdatedAt": 2_000}

    async def get_settings(self) -> Dict[str, Any]:
        self._maybe_fail()
        return dict(self.settings)


def offline_error() -> NetworkError:
    return NetworkError("connection refused")


def server_error(status: int = 500) -> ApiError:
    return ApiError("boom", status_code=status, body={"message": "boom"})
