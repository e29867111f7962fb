from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.enums import SyncEntityType, SyncOperation
from ..database.sqlite_base import safe_int, safe_parse_json, safe_str, to_json


def make_queue_id(entity_type: str, entity_id: str, prop: Optional[str], timestamp: int) -> str:
    return f"{entity_type}_{entity_id}_{prop or 'all'}_{int(timestamp)}"


@dataclass(frozen=True)
class SyncQueueItem:
    """A pending mutation waiting to be pushed to the server."""

    id: str
    type: str
    entity_id: str
    property: Optional[str]
    operation: str
    data: Any
    timestamp: int
    attempts: int = 0
    next_retry_at: int = 0
    created_at: int = 0

    @property
    def entity_type(self) -> Optional[SyncEntityType]:
        try:
            return SyncEntityType(self.type)
        except ValueError:
            return None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SyncQueueItem":
        return cls(
            id=str(row["id"]),
            type=safe_str(row.get("type")) or "",
            entity_id=safe_str(row.get("entityId")) or "",
            property=safe_str(row.get("property")),
            operation=safe_str(row.get("operation")) or SyncOperation.UPDATE.value,
            data=safe_parse_json(row.get("data")),
            timestamp=safe_int(row.get("timestamp")) or 0,
            attempts=safe_int(row.get("attempts")) or 0,
            next_retry_at=safe_int(row.get("nextRetryAt")) or 0,
            created_at=safe_int(row.get("createdAt")) or 0,
        )

    def to_row(self) -> tuple:
        return (
            self.id,
            self.type,
            self.entity_id,
            self.property,
            self.operation,
            to_json(self.data),
            int(self.timestamp),
            int(self.attempts),
            int(self.next_retry_at),
            int(self.created_at),
        )


@dataclass(frozen=True)
class PushResult:
    success: int = 0
    failed: int = 0


@dataclass
class SyncResult:
    success: bool = False
    profile: PushResult = field(default_factory=PushResult)
    attendance: PushResult = field(default_factory=PushResult)
    settings: PushResult = field(default_factory=PushResult)
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class QueueDrainResult:
    processed: int = 0
    synced: int = 0
    retried: int = 0
    dropped: int = 0
