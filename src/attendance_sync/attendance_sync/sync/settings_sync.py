from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from ..api.server_api import ServerApi
from ..common.datetime_utils import api_timestamp_to_ticks, now_ms
from ..common.validators import require_non_empty
from ..core.enums import SyncEntityType
from ..core.exceptions import DomainError
from ..network.monitor import NetworkMonitor
from ..user_settings.model import Setting
from ..user_settings.repository import SettingsRepository
from .model import PushResult, SyncQueueItem
from .queue_service import SyncQueue

logger = logging.getLogger(__name__)


class SettingsSyncService:
    """Per-key settings with the same two-clock rule as the profile.

    The server settings API is optional. Without one, pushes are acknowledged
    locally and pulls do nothing; both are logged.
    """

    def __init__(
        self,
        repo: SettingsRepository,
        api: ServerApi,
        network: NetworkMonitor,
        queue: SyncQueue,
        *,
        clock: Callable[[], int] = now_ms,
    ):
        self._repo = repo
        self._api = api
        self._network = network
        self._queue = queue
        self._clock = clock

    async def save_setting(self, key: str, value: Any) -> SyncQueueItem:
        key = require_non_empty(key, "key")
        now = self._clock()
        await self._repo.save(key, value, now=now)
        return await self._queue.enqueue(SyncEntityType.SETTINGS, key, data={"value": value}, timestamp=now)

    async def load_setting(self, key: str, default: Any = None) -> Any:
        setting = await self._repo.get(key)
        if setting is None or setting.value is None:
            return default
        return setting.value

    async def get_unsynced(self, owner_key: Optional[str] = None) -> Sequence[Setting]:
        return await self._repo.list_unsynced()

    async def mark_synced(self, key: str, server_last_updated_at: Optional[int] = None) -> None:
        await self._repo.mark_synced(key, server_last_updated_at=server_last_updated_at, now=self._clock())

    async def push_setting(self, key: str, value: Any) -> bool:
        if not self._api.settings_enabled:
            logger.info("No server settings API; acknowledging setting %s locally", key)
            await self.mark_synced(key)
            await self._queue.discard(SyncEntityType.SETTINGS, key)
            return True
        if not await self._network.is_connected():
            logger.debug("Offline; setting %s stays local", key)
            return False
        try:
            response = await self._api.push_setting(key, value)
        except DomainError as exc:
            logger.error("Pushing setting %s failed: %s", key, exc)
            return False
        await self.mark_synced(key, api_timestamp_to_ticks(response.get("lastUpdatedAt")))
        await self._queue.discard(SyncEntityType.SETTINGS, key)
        return True

    async def push_one(self, item: SyncQueueItem) -> bool:
        setting = await self._repo.get(item.entity_id)
        if setting is None:
            logger.warning("Queued setting %s no longer exists; dropping", item.entity_id)
            return True
        if setting.is_synced:
            return True
        return await self.push_setting(setting.key, setting.value)

    async def push_all_unsynced(self, owner_key: Optional[str] = None) -> PushResult:
        success = failed = 0
        for setting in await self.get_unsynced(owner_key):
            if await self.push_setting(setting.key, setting.value):
                success += 1
                continue
            failed += 1
            await self._queue.ensure_queued(
                SyncEntityType.SETTINGS,
                setting.key,
                data={"value": setting.value},
                timestamp=setting.last_updated_at,
            )
        if success or failed:
            logger.info("Settings push: %s synced, %s failed", success, failed)
        return PushResult(success=success, failed=failed)

    async def merge_server_data(self, values: Mapping[str, Any], server_last_updated_at: int) -> Dict[str, bool]:
        """Merge server settings key by key. Maps each key to whether the server value was applied."""
        applied: Dict[str, bool] = {}
        now = self._clock()
        for key, value in values.items():
            applied[key] = await self._repo.merge_server_value(
                key, value, server_last_updated_at=server_last_updated_at, now=now
            )
        return applied

    async def pull_from_server(self, owner_key: Optional[str] = None) -> None:
        if not self._api.settings_enabled:
            logger.debug("Settings pull skipped: no server settings API configured")
            return
        if not await self._network.is_connected():
            logger.debug("Offline; skipping settings pull")
            return
        body = await self._api.get_settings()
        values = body.get("settings") if isinstance(body.get("settings"), Mapping) else {}
        server_ts = api_timestamp_to_ticks(body.get("lastUpdatedAt"))
        applied = await self.merge_server_data(values, server_ts if server_ts is not None else self._clock())
        logger.info("Settings pull: %s keys, %s applied", len(applied), sum(applied.values()))

    async def settings_status(self) -> Sequence[Setting]:
        return await self._repo.list_all()
