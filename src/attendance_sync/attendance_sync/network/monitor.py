from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Protocol

import requests

logger = logging.getLogger(__name__)

ConnectivityListener = Callable[[bool], None]


class ReachabilityProbe(Protocol):
    async def check(self) -> bool:
        raise NotImplementedError


class HttpReachabilityProbe:
    """Online means the API host answered anything at all."""

    def __init__(self, url: str, *, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()

    def _check_sync(self) -> bool:
        try:
            self._session.head(self._url, timeout=self._timeout, allow_redirects=True)
        except requests.exceptions.RequestException as exc:
            logger.debug("Reachability check against %s failed: %s", self._url, exc)
            return False
        return True

    async def check(self) -> bool:
        return await asyncio.to_thread(self._check_sync)


class NetworkMonitor:
    """Tracks online/offline and notifies subscribers on every change.

    State comes from the probe when one is configured, otherwise from
    whatever the platform layer reports through ``set_connected``.
    """

    def __init__(self, probe: Optional[ReachabilityProbe] = None, *, initially_connected: bool = False):
        self._probe = probe
        self._connected = bool(initially_connected)
        self._listeners: List[ConnectivityListener] = []

    @property
    def last_known(self) -> bool:
        return self._connected

    async def is_connected(self) -> bool:
        if self._probe is not None:
            self.set_connected(await self._probe.check())
        return self._connected

    def set_connected(self, connected: bool) -> None:
        connected = bool(connected)
        if connected == self._connected:
            return
        self._connected = connected
        logger.info("Network is now %s", "online" if connected else "offline")
        for listener in list(self._listeners):
            self._notify(listener, connected)

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register ``listener``; it is called once right away with the current state."""
        self._listeners.append(listener)
        self._notify(listener, self._connected)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @staticmethod
    def _notify(listener: ConnectivityListener, connected: bool) -> None:
        try:
            listener(connected)
        except Exception:
            logger.error("Connectivity listener %r failed", listener, exc_info=True)
