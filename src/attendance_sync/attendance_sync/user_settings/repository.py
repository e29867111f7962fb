from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from .model import Setting


class SettingsRepository(Protocol):
    async def get(self, key: str) -> Optional[Setting]:
        raise NotImplementedError

    async def list_all(self) -> Sequence[Setting]:
        raise NotImplementedError

    async def list_unsynced(self) -> Sequence[Setting]:
        raise NotImplementedError

    async def save(self, key: str, value: Any, *, now: int) -> None:
        raise NotImplementedError

    async def mark_synced(self, key: str, *, server_last_updated_at: Optional[int], now: int) -> None:
        raise NotImplementedError

    async def merge_server_value(self, key: str, value: Any, *, server_last_updated_at: int, now: int) -> bool:
        raise NotImplementedError
