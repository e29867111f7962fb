from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Derived per-day status shown for an attendance day."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    PARTIAL = "PARTIAL"
    HOURS_DEFICIT = "HOURS_DEFICIT"


class PunchDirection(str, Enum):
    IN = "IN"
    OUT = "OUT"


class SyncFlag(str, Enum):
    """Y/N flag stored in the attendance table."""

    SYNCED = "Y"
    UNSYNCED = "N"


class SyncEntityType(str, Enum):
    PROFILE = "profile"
    ATTENDANCE = "attendance"
    SETTINGS = "settings"


class SyncOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
