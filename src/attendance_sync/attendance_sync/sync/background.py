from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Tuple

from ..core.constants import DEFAULT_SYNC_INTERVAL_SECONDS
from ..network.monitor import NetworkMonitor
from .coordinator import SyncCoordinator
from .model import QueueDrainResult, SyncResult

logger = logging.getLogger(__name__)

# Returns (email, user_id) of the signed-in user, or None when signed out.
SessionProvider = Callable[[], Optional[Tuple[str, str]]]


class BackgroundSyncService:
    """Runs a full sync plus a queue drain on reconnect and on a fixed interval."""

    def __init__(
        self,
        coordinator: SyncCoordinator,
        network: NetworkMonitor,
        session_provider: SessionProvider,
        *,
        interval_seconds: float = DEFAULT_SYNC_INTERVAL_SECONDS,
    ):
        self._coordinator = coordinator
        self._network = network
        self._session = session_provider
        self._interval = float(interval_seconds)
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._periodic: Optional[asyncio.Task] = None
        self._running: Optional[asyncio.Task] = None
        self._was_connected: Optional[bool] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._lock = asyncio.Lock()

    @property
    def started(self) -> bool:
        return self._periodic is not None

    def start(self) -> None:
        """Must be called from inside a running event loop."""
        if self.started:
            return
        self._loop = asyncio.get_running_loop()
        self._was_connected = None
        self._unsubscribe = self._network.subscribe(self._on_connectivity)
        self._periodic = self._loop.create_task(self._tick_forever())
        logger.info("Background sync started (every %ss)", self._interval)

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in (self._periodic, self._running):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._periodic = None
        self._running = None
        logger.info("Background sync stopped")

    def _on_connectivity(self, connected: bool) -> None:
        # May be called from a platform thread; hop onto the loop.
        came_online = connected and self._was_connected is False
        self._was_connected = connected
        if came_online and self._loop is not None:
            self._loop.call_soon_threadsafe(self._schedule_sync)

    def _schedule_sync(self) -> None:
        if self._running is None or self._running.done():
            logger.info("Back online; scheduling sync")
            self._running = asyncio.ensure_future(self._sync_logged())

    async def _sync_logged(self) -> None:
        try:
            await self.trigger_sync()
        except Exception:
            logger.error("Background sync failed", exc_info=True)

    async def _tick_forever(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self._sync_logged()

    async def trigger_sync(self) -> Optional[Tuple[SyncResult, QueueDrainResult]]:
        """One sync pass. Skipped while offline, signed out, or already syncing."""
        session = self._session()
        if session is None:
            logger.debug("Sync trigger ignored: no signed-in user")
            return None
        if self._lock.locked():
            logger.debug("Sync trigger ignored: a sync is already running")
            return None
        async with self._lock:
            if not await self._network.is_connected():
                return None
            email, user_id = session
            result = await self._coordinator.sync_all(email, user_id)
            drained = await self._coordinator.process_sync_queue()
            return result, drained
