from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

from .model import SyncQueueItem


class SyncQueueRepository(Protocol):
    async def upsert(self, item: SyncQueueItem) -> None:
        """Insert or replace ``item`` and drop older rows for the same entity/property."""

        raise NotImplementedError

    async def get(self, item_id: str) -> Optional[SyncQueueItem]:
        raise NotImplementedError

    async def list_due(self, now: int, *, entity_type: Optional[str] = None) -> Sequence[SyncQueueItem]:
        raise NotImplementedError

    async def find(self, entity_type: str, entity_id: str, prop: Optional[str]) -> Optional[SyncQueueItem]:
        raise NotImplementedError

    async def delete(self, item_id: str) -> bool:
        raise NotImplementedError

    async def delete_for(self, entity_type: str, entity_id: str, prop: Optional[str]) -> int:
        raise NotImplementedError

    async def increment_attempts(
        self, item_id: str, *, next_retry_at_for: Callable[[int], int]
    ) -> Optional[SyncQueueItem]:
        raise NotImplementedError

    async def count(self) -> int:
        raise NotImplementedError

    async def clear(self) -> None:
        raise NotImplementedError
