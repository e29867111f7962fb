"""Table layouts for the on-device store.

Column dicts are ordered; ``bootstrap.create_schema`` adds any column that an
older install is missing.
"""

from __future__ import annotations

from ..core.constants import PROFILE_PROPERTIES

ATTENDANCE_COLUMNS = {
    "Timestamp": "BIGINT PRIMARY KEY",
    "OrgID": "TEXT",
    "UserID": "TEXT",
    "PunchType": "TEXT",
    "PunchDirection": "TEXT",
    "LatLon": "TEXT",
    "Address": "TEXT",
    "CreatedOn": "BIGINT",
    "IsSynced": "TEXT DEFAULT 'N'",
    "DateOfPunch": "TEXT",
    "AttendanceStatus": "TEXT",
    "ModuleID": "TEXT",
    "TripType": "TEXT",
    "PassengerID": "TEXT",
    "AllowanceData": "TEXT DEFAULT '[]'",
    "IsCheckoutQrScan": "INTEGER DEFAULT 0",
    "TravelerName": "TEXT",
    "PhoneNumber": "TEXT",
    "ShiftStartTime": "TEXT",
    "ShiftEndTime": "TEXT",
    "MinimumHoursRequired": "REAL",
    "LinkedEntryDate": "TEXT",
    "ServerTimestamp": "BIGINT",
    "ApprovalRequired": "TEXT DEFAULT 'N'",
}

ATTENDANCE_INDEXES = {
    "idx_userid": "attendance(UserID)",
    "idx_synced": "attendance(IsSynced)",
    "idx_timestamp": "attendance(Timestamp)",
}

PROFILE_COLUMNS = {
    "email": "TEXT PRIMARY KEY",
    **{prop: "TEXT" for prop in PROFILE_PROPERTIES},
    "lastUpdatedAt": "INTEGER",
    "server_lastSyncedAt": "INTEGER",
    "isSynced": "INTEGER DEFAULT 1",
    "createdAt": "INTEGER",
    "updatedAt": "INTEGER",
}

PROFILE_INDEXES = {
    "idx_profile_email": "profile(email)",
}

SETTINGS_COLUMNS = {
    "key": "TEXT PRIMARY KEY",
    "value": "TEXT",
    "isSynced": "INTEGER DEFAULT 1",
    "lastUpdatedAt": "INTEGER",
    "server_lastUpdatedAt": "INTEGER",
    "createdAt": "INTEGER",
    "updatedAt": "INTEGER",
}

SETTINGS_INDEXES = {
    "idx_settings_key": "settings(key)",
    "idx_settings_synced": "settings(isSynced)",
}

SYNC_QUEUE_COLUMNS = {
    "id": "TEXT PRIMARY KEY",
    "type": "TEXT",
    "entityId": "TEXT",
    "property": "TEXT",
    "operation": "TEXT",
    "data": "TEXT",
    "timestamp": "INTEGER",
    "attempts": "INTEGER DEFAULT 0",
    "nextRetryAt": "INTEGER",
    "createdAt": "INTEGER",
}

SYNC_QUEUE_INDEXES = {
    "idx_sync_queue_next_retry": "sync_queue(nextRetryAt)",
    "idx_sync_queue_entity": "sync_queue(type, entityId, property)",
}

TABLES = {
    "attendance": (ATTENDANCE_COLUMNS, ATTENDANCE_INDEXES),
    "profile": (PROFILE_COLUMNS, PROFILE_INDEXES),
    "settings": (SETTINGS_COLUMNS, SETTINGS_INDEXES),
    "sync_queue": (SYNC_QUEUE_COLUMNS, SYNC_QUEUE_INDEXES),
}
