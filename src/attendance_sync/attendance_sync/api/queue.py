from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..core.constants import API_CACHE_TTL_SECONDS, API_MAX_CONCURRENT_REQUESTS
from .client import ApiClient

logger = logging.getLogger(__name__)


def request_key(method: str, path: str, params: Any = None, data: Any = None) -> str:
    return ":".join(
        [
            method.upper(),
            path,
            json.dumps(params, sort_keys=True, default=str),
            json.dumps(data, sort_keys=True, default=str),
        ]
    )


class ApiRequestQueue:
    """Coalesces identical in-flight requests and caches fresh GET responses.

    A second caller for the same method/path/params/body awaits the first
    caller's task instead of issuing another HTTP call. Waiters are shielded,
    so cancelling one waiter leaves the shared request running.
    """

    def __init__(
        self,
        client: ApiClient,
        *,
        cache_ttl_seconds: float = API_CACHE_TTL_SECONDS,
        max_concurrent: int = API_MAX_CONCURRENT_REQUESTS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self._ttl = float(cache_ttl_seconds)
        self._clock = clock
        self._semaphore = asyncio.Semaphore(max(1, int(max_concurrent)))
        self._pending: Dict[str, asyncio.Task] = {}
        self._cache: Dict[str, Tuple[float, Any]] = {}

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    @property
    def cached_entries(self) -> int:
        return len(self._cache)

    def _prune_expired(self) -> None:
        now = self._clock()
        expired = [k for k, (stored_at, _) in self._cache.items() if now - stored_at > self._ttl]
        for key in expired:
            del self._cache[key]

    def _cached(self, key: str) -> Tuple[bool, Any]:
        entry = self._cache.get(key)
        if entry is None:
            return False, None
        stored_at, value = entry
        if self._clock() - stored_at > self._ttl:
            del self._cache[key]
            return False, None
        return True, value

    async def _execute(self, key: str, method: str, path: str, params, data) -> Any:
        async with self._semaphore:
            result = await self._client.arequest(method, path, params=params, json_body=data)
        if method == "GET":
            self._prune_expired()
            self._cache[key] = (self._clock(), result)
        else:
            # A successful write may change what later GETs return.
            self._cache.clear()
        return result

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        if not task.cancelled():
            # Mark the exception retrieved; waiters still see it.
            task.exception()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        data: Any = None,
        use_cache: bool = True,
    ) -> Any:
        method = method.upper()
        key = request_key(method, path, params, data)

        if method == "GET" and use_cache:
            hit, value = self._cached(key)
            if hit:
                logger.debug("Cache hit %s", key)
                return value

        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._execute(key, method, path, params, data))
            self._pending[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            logger.debug("Joining in-flight request %s", key)
        return await asyncio.shield(task)

    async def get(self, path: str, *, params: Optional[Mapping[str, Any]] = None, use_cache: bool = True) -> Any:
        return await self.request("GET", path, params=params, use_cache=use_cache)

    async def post(self, path: str, data: Any = None) -> Any:
        return await self.request("POST", path, data=data)

    async def put(self, path: str, data: Any = None) -> Any:
        return await self.request("PUT", path, data=data)

    def cancel_all(self) -> int:
        """Cancel every in-flight request. Returns how many were cancelled."""
        tasks = list(self._pending.values())
        for task in tasks:
            task.cancel()
        self._pending.clear()
        return len(tasks)
