from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..common.datetime_utils import api_timestamp_to_ticks
from ..core.constants import PROFILE_PROPERTIES
from ..database.sqlite_base import safe_int, safe_parse_json

# Server field names that map onto a local property column.
_SERVER_ALIASES = {"profilePhotoUrl": "profilePhoto"}


@dataclass(frozen=True)
class Profile:
    """Single per-user profile row, keyed by email.

    ``last_updated_at`` moves only on local edits; ``server_last_synced_at``
    only on a successful server response.
    """

    email: str
    properties: Dict[str, Any] = field(default_factory=dict)
    last_updated_at: Optional[int] = None
    server_last_synced_at: Optional[int] = None
    is_synced: bool = True
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    def get(self, prop: str, default: Any = None) -> Any:
        value = self.properties.get(prop)
        return default if value is None else value

    @property
    def shift_start_time(self) -> Optional[str]:
        value = self.properties.get("shiftStartTime")
        return str(value) if value is not None else None

    @property
    def shift_end_time(self) -> Optional[str]:
        value = self.properties.get("shiftEndTime")
        return str(value) if value is not None else None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Profile":
        # A corrupt column only loses that one property.
        props = {prop: safe_parse_json(row.get(prop)) for prop in PROFILE_PROPERTIES}
        return cls(
            email=str(row["email"]),
            properties={k: v for k, v in props.items() if v is not None},
            last_updated_at=safe_int(row.get("lastUpdatedAt")),
            server_last_synced_at=safe_int(row.get("server_lastSyncedAt")),
            is_synced=bool(safe_int(row.get("isSynced")) if row.get("isSynced") is not None else 1),
            created_at=safe_int(row.get("createdAt")),
            updated_at=safe_int(row.get("updatedAt")),
        )


@dataclass(frozen=True)
class UnsyncedProfileProperty:
    email: str
    property: str
    value: Any
    last_updated_at: int


@dataclass(frozen=True)
class ServerProfile:
    """Profile as returned by the server, reduced to known local properties."""

    values: Dict[str, Any]
    last_synced_at: Optional[int]

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "ServerProfile":
        body = data.get("data") if isinstance(data.get("data"), Mapping) else data
        values: Dict[str, Any] = {}
        for key, value in body.items():
            prop = _SERVER_ALIASES.get(key, key)
            if prop in PROFILE_PROPERTIES and value is not None:
                values[prop] = value
        return cls(values=values, last_synced_at=api_timestamp_to_ticks(body.get("lastSyncedAt")))


@dataclass(frozen=True)
class ProfileSyncStatus:
    email: str
    is_synced: bool
    last_updated_at: Optional[int]
    server_last_synced_at: Optional[int]
    properties: Dict[str, Any]


@dataclass(frozen=True)
class ProfileUpdateOutcome:
    """Result of an explicit user edit: always saved locally, maybe synced."""

    saved_locally: bool
    synced: bool
    message: Optional[str] = None
