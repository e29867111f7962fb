from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from .queue import ApiRequestQueue

PUNCH_IN_PATH = "/api/attendance/punch-in"
PUNCH_OUT_PATH = "/api/attendance/punch-out"
ATTENDANCE_DAYS_PATH = "/api/attendance/days"
UPDATE_PROFILE_PATH = "/api/auth/update-profile"
UPLOAD_PROFILE_PHOTO_PATH = "/api/auth/upload-profile-photo"
PROFILE_PATH = "/api/auth/profile"


def _unwrap(body: Any) -> Any:
    if isinstance(body, Mapping) and "data" in body:
        return body["data"]
    return body


def _as_dict(body: Any) -> Dict[str, Any]:
    body = _unwrap(body)
    return dict(body) if isinstance(body, Mapping) else {}


class ServerApi:
    """Endpoints the sync services talk to."""

    def __init__(self, queue: ApiRequestQueue, *, settings_path: Optional[str] = None):
        self._queue = queue
        self._settings_path = settings_path

    @property
    def settings_enabled(self) -> bool:
        return bool(self._settings_path)

    async def punch_in(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return _as_dict(await self._queue.post(PUNCH_IN_PATH, dict(payload)))

    async def punch_out(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return _as_dict(await self._queue.post(PUNCH_OUT_PATH, dict(payload)))

    async def get_attendance_days(
        self, *, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        params = {}
        if start_date:
            params["startDate"] = start_date
        if end_date:
            params["endDate"] = end_date
        body = _unwrap(await self._queue.get(ATTENDANCE_DAYS_PATH, params=params or None))
        if isinstance(body, Mapping):
            body = body.get("days") or []
        return [dict(day) for day in body or [] if isinstance(day, Mapping)]

    async def update_profile(self, changes: Mapping[str, Any]) -> Dict[str, Any]:
        return _as_dict(await self._queue.post(UPDATE_PROFILE_PATH, dict(changes)))

    async def upload_profile_photo(self, photo: Any) -> Dict[str, Any]:
        return _as_dict(await self._queue.post(UPLOAD_PROFILE_PHOTO_PATH, {"profilePhoto": photo}))

    async def get_profile(self) -> Dict[str, Any]:
        return _as_dict(await self._queue.get(PROFILE_PATH, use_cache=False))

    async def push_setting(self, key: str, value: Any) -> Dict[str, Any]:
        return _as_dict(await self._queue.put(self._settings_path, {"key": key, "value": value}))

    async def get_settings(self) -> Dict[str, Any]:
        return _as_dict(await self._queue.get(self._settings_path, use_cache=False))
