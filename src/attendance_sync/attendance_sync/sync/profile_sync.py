from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..api.server_api import ServerApi
from ..common.datetime_utils import api_timestamp_to_ticks, now_ms
from ..common.validators import require_non_empty, require_profile_property
from ..core.enums import SyncEntityType
from ..core.exceptions import AuthorizationError, DomainError
from ..network.monitor import NetworkMonitor
from ..profile.model import (
    Profile,
    ProfileSyncStatus,
    ProfileUpdateOutcome,
    ServerProfile,
    UnsyncedProfileProperty,
)
from ..profile.repository import ProfileRepository
from .model import PushResult, SyncQueueItem
from .queue_service import SyncQueue

logger = logging.getLogger(__name__)

PHOTO_PROPERTY = "profilePhoto"

MSG_SAVED_OFFLINE = "Saved on this device. It will sync when you are back online."
MSG_SAVED_RETRY = "Could not reach the server. Your changes are saved and will sync automatically."
MSG_FORBIDDEN = "You are not allowed to change this detail."


class ProfileSyncService:
    """Profile edits with two-clock conflict resolution.

    ``lastUpdatedAt`` records local edits, ``server_lastSyncedAt`` records
    server confirmations. Server data wins when it is at least as new.
    """

    def __init__(
        self,
        repo: ProfileRepository,
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

    async def load_profile(self, email: str) -> Optional[Profile]:
        return await self._repo.get(email)

    async def save_property(self, email: str, prop: str, value: Any) -> SyncQueueItem:
        """Background edit: store locally and queue for push."""
        email = require_non_empty(email, "email")
        prop = require_profile_property(prop)
        now = self._clock()
        await self._repo.save_properties(email, {prop: value}, now=now)
        return await self._queue.enqueue(
            SyncEntityType.PROFILE, email, prop=prop, data={"value": value}, timestamp=now
        )

    async def get_unsynced(self, email: str) -> List[UnsyncedProfileProperty]:
        profile = await self._repo.get(email)
        if profile is None or profile.is_synced:
            return []
        stamp = profile.last_updated_at or self._clock()
        return [
            UnsyncedProfileProperty(email=email, property=prop, value=value, last_updated_at=stamp)
            for prop, value in profile.properties.items()
        ]

    async def _send_property(self, prop: str, value: Any) -> Dict[str, Any]:
        if prop == PHOTO_PROPERTY:
            return await self._api.upload_profile_photo(value)
        return await self._api.update_profile({prop: value})

    async def mark_synced(self, email: str, response: Optional[Mapping[str, Any]] = None) -> None:
        server_ts = api_timestamp_to_ticks((response or {}).get("lastSyncedAt"))
        await self._repo.mark_synced(email, server_last_synced_at=server_ts, now=self._clock())

    async def push_property(self, email: str, prop: str, value: Any) -> bool:
        if not await self._network.is_connected():
            logger.debug("Offline; profile property %s stays local", prop)
            return False
        try:
            response = await self._send_property(prop, value)
        except DomainError as exc:
            logger.error("Pushing profile property %s for %s failed: %s", prop, email, exc)
            return False
        await self.mark_synced(email, response)
        await self._queue.discard(SyncEntityType.PROFILE, email, prop)
        return True

    async def push_one(self, item: SyncQueueItem) -> bool:
        if not item.property:
            logger.warning("Profile queue item %s has no property; dropping", item.id)
            return True
        value = item.data.get("value") if isinstance(item.data, Mapping) else item.data
        return await self.push_property(item.entity_id, item.property, value)

    async def push_all_unsynced(self, email: str) -> PushResult:
        success = failed = 0
        for pending in await self.get_unsynced(email):
            if await self.push_property(email, pending.property, pending.value):
                success += 1
                continue
            failed += 1
            await self._queue.ensure_queued(
                SyncEntityType.PROFILE,
                email,
                prop=pending.property,
                data={"value": pending.value},
                timestamp=pending.last_updated_at,
            )
        if success or failed:
            logger.info("Profile push for %s: %s synced, %s failed", email, success, failed)
        return PushResult(success=success, failed=failed)

    async def merge_server_data(self, email: str, server: ServerProfile) -> bool:
        server_ts = server.last_synced_at if server.last_synced_at is not None else self._clock()
        return await self._repo.merge_server_profile(
            email, server.values, server_last_synced_at=server_ts, now=self._clock()
        )

    async def pull_from_server(self, email: str) -> None:
        if not await self._network.is_connected():
            logger.debug("Offline; skipping profile pull for %s", email)
            return
        payload = await self._api.get_profile()
        applied = await self.merge_server_data(email, ServerProfile.from_payload(payload))
        logger.info("Profile pull for %s: %s", email, "applied server copy" if applied else "kept local edits")

    async def update_profile(self, email: str, changes: Mapping[str, Any]) -> ProfileUpdateOutcome:
        """Explicit user edit. The local copy is kept whatever the server says."""
        email = require_non_empty(email, "email")
        for prop in changes:
            require_profile_property(prop)
        now = self._clock()
        await self._repo.save_properties(email, changes, now=now)
        for prop, value in changes.items():
            await self._queue.enqueue(SyncEntityType.PROFILE, email, prop=prop, data={"value": value}, timestamp=now)

        if not await self._network.is_connected():
            return ProfileUpdateOutcome(saved_locally=True, synced=False, message=MSG_SAVED_OFFLINE)

        response: Dict[str, Any] = {}
        try:
            for prop, value in changes.items():
                response = await self._send_property(prop, value)
        except AuthorizationError as exc:
            logger.warning("Profile update for %s rejected: %s", email, exc)
            return ProfileUpdateOutcome(saved_locally=True, synced=False, message=MSG_FORBIDDEN)
        except DomainError as exc:
            logger.error("Profile update for %s failed: %s", email, exc)
            return ProfileUpdateOutcome(saved_locally=True, synced=False, message=MSG_SAVED_RETRY)

        await self.mark_synced(email, response)
        for prop in changes:
            await self._queue.discard(SyncEntityType.PROFILE, email, prop)
        return ProfileUpdateOutcome(saved_locally=True, synced=True)

    async def sync_status(self, email: str) -> ProfileSyncStatus:
        profile = await self._repo.get(email)
        if profile is None:
            return ProfileSyncStatus(
                email=email, is_synced=True, last_updated_at=None, server_last_synced_at=None, properties={}
            )
        return ProfileSyncStatus(
            email=email,
            is_synced=profile.is_synced,
            last_updated_at=profile.last_updated_at,
            server_last_synced_at=profile.server_last_synced_at,
            properties=dict(profile.properties),
        )
