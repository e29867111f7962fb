from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from ..common.datetime_utils import now_ms
from ..core.enums import SyncEntityType, SyncOperation
from .model import SyncQueueItem, make_queue_id
from .queue_repository import SyncQueueRepository
from .retry import DEFAULT_RETRY_POLICY, RetryPolicy

logger = logging.getLogger(__name__)


class SyncQueue:
    """Durable list of mutations awaiting push, with backoff-scheduled retries."""

    def __init__(
        self,
        repo: SyncQueueRepository,
        *,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        clock: Callable[[], int] = now_ms,
    ):
        self._repo = repo
        self._policy = policy
        self._clock = clock

    async def enqueue(
        self,
        entity_type: SyncEntityType | str,
        entity_id: str,
        *,
        data: Any,
        prop: Optional[str] = None,
        operation: SyncOperation | str = SyncOperation.UPDATE,
        timestamp: Optional[int] = None,
    ) -> SyncQueueItem:
        type_value = entity_type.value if isinstance(entity_type, SyncEntityType) else str(entity_type)
        op_value = operation.value if isinstance(operation, SyncOperation) else str(operation)
        now = self._clock()
        ts = now if timestamp is None else int(timestamp)
        item = SyncQueueItem(
            id=make_queue_id(type_value, str(entity_id), prop, ts),
            type=type_value,
            entity_id=str(entity_id),
            property=prop,
            operation=op_value,
            data=data,
            timestamp=ts,
            attempts=0,
            next_retry_at=self._policy.next_retry_at(0, now),
            created_at=now,
        )
        await self._repo.upsert(item)
        logger.debug("Queued %s for %s/%s", item.id, type_value, prop or "all")
        return item

    async def ensure_queued(
        self,
        entity_type: SyncEntityType | str,
        entity_id: str,
        *,
        data: Any,
        prop: Optional[str] = None,
        operation: SyncOperation | str = SyncOperation.UPDATE,
        timestamp: Optional[int] = None,
    ) -> SyncQueueItem:
        """Enqueue unless a row for the same entity/property is already waiting.

        Keeps the existing row's attempt count and backoff schedule.
        """
        type_value = entity_type.value if isinstance(entity_type, SyncEntityType) else str(entity_type)
        existing = await self._repo.find(type_value, str(entity_id), prop)
        if existing is not None:
            return existing
        return await self.enqueue(
            entity_type, entity_id, data=data, prop=prop, operation=operation, timestamp=timestamp
        )

    async def discard(self, entity_type: SyncEntityType | str, entity_id: str, prop: Optional[str] = None) -> int:
        """Drop queued rows for an entity/property that has just been pushed."""
        type_value = entity_type.value if isinstance(entity_type, SyncEntityType) else str(entity_type)
        return await self._repo.delete_for(type_value, str(entity_id), prop)

    async def drainable_pending_items(self, now: Optional[int] = None) -> Sequence[SyncQueueItem]:
        return await self._repo.list_due(self._clock() if now is None else int(now))

    async def pending_items_by_type(
        self, entity_type: SyncEntityType | str, now: Optional[int] = None
    ) -> Sequence[SyncQueueItem]:
        type_value = entity_type.value if isinstance(entity_type, SyncEntityType) else str(entity_type)
        return await self._repo.list_due(self._clock() if now is None else int(now), entity_type=type_value)

    async def get(self, item_id: str) -> Optional[SyncQueueItem]:
        return await self._repo.get(item_id)

    async def mark_synced(self, item_id: str) -> None:
        await self._repo.delete(item_id)

    async def increment_attempts(self, item_id: str) -> Optional[SyncQueueItem]:
        """Bump the attempt counter and push ``nextRetryAt`` out. Missing rows are a no-op."""
        now = self._clock()
        updated = await self._repo.increment_attempts(
            item_id, next_retry_at_for=lambda attempts: self._policy.next_retry_at(attempts, now)
        )
        if updated is None:
            logger.debug("Queue item %s already gone; nothing to retry", item_id)
        else:
            logger.debug(
                "Queue item %s attempt %s, next retry at %s", item_id, updated.attempts, updated.next_retry_at
            )
        return updated

    def is_exhausted(self, item: SyncQueueItem) -> bool:
        return not self._policy.should_retry(item.attempts)

    async def size(self) -> int:
        return await self._repo.count()

    async def clear(self) -> None:
        await self._repo.clear()
