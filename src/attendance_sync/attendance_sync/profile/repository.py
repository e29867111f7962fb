from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from .model import Profile


class ProfileRepository(Protocol):
    async def get(self, email: str) -> Optional[Profile]:
        raise NotImplementedError

    async def save_properties(self, email: str, changes: Mapping[str, Any], *, now: int) -> None:
        """Local edit: store values, stamp ``lastUpdatedAt`` and mark the row unsynced."""

        raise NotImplementedError

    async def mark_synced(self, email: str, *, server_last_synced_at: Optional[int], now: int) -> None:
        raise NotImplementedError

    async def merge_server_profile(
        self, email: str, values: Mapping[str, Any], *, server_last_synced_at: int, now: int
    ) -> bool:
        """Apply server values unless local edits are newer. Returns True if applied."""

        raise NotImplementedError
