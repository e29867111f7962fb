from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..database.sqlite_base import safe_int, safe_parse_json


@dataclass(frozen=True)
class Setting:
    key: str
    value: Any
    is_synced: bool = True
    last_updated_at: Optional[int] = None
    server_last_updated_at: Optional[int] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Setting":
        return cls(
            key=str(row["key"]),
            value=safe_parse_json(row.get("value")),
            is_synced=bool(safe_int(row.get("isSynced"))),
            last_updated_at=safe_int(row.get("lastUpdatedAt")),
            server_last_updated_at=safe_int(row.get("server_lastUpdatedAt")),
            created_at=safe_int(row.get("createdAt")),
            updated_at=safe_int(row.get("updatedAt")),
        )
