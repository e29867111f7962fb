from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional, Protocol

import requests

from ..core.constants import DEFAULT_REQUEST_TIMEOUT_SECONDS
from ..core.exceptions import ApiError, AuthenticationError, AuthorizationError, NetworkError

logger = logging.getLogger(__name__)

_SENSITIVE_KEYS = ("token", "password", "otp", "authorization", "secret", "aadhaar", "pan")


class TokenProvider(Protocol):
    """Opaque source of bearer tokens; storage and refresh live elsewhere."""

    def get_token(self) -> Optional[str]:
        raise NotImplementedError

    def refresh_token(self) -> Optional[str]:
        raise NotImplementedError


def sanitize(value: Any) -> Any:
    """Copy of ``value`` with credential-like fields masked, for logging."""
    if isinstance(value, Mapping):
        return {
            k: "***" if any(s in str(k).lower() for s in _SENSITIVE_KEYS) else sanitize(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [sanitize(v) for v in value]
    return value


def _decode(response: requests.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class ApiClient:
    """JSON-over-HTTPS client with bearer auth.

    401 triggers one token refresh and a single retry; 403 is terminal.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._tokens = token_provider
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json", "Accept": "application/json"})

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    def _send(self, method: str, url: str, *, token: Optional[str], params, json_body) -> requests.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            return self._session.request(
                method, url, params=params, json=json_body, headers=headers, timeout=self._timeout
            )
        except requests.exceptions.RequestException as exc:
            raise NetworkError(f"{method} {url} failed: {exc}") from exc

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Any = None,
    ) -> Any:
        method = method.upper()
        url = self.url_for(path)
        token = self._tokens.get_token() if self._tokens else None
        logger.debug("%s %s params=%s body=%s", method, url, sanitize(params), sanitize(json_body))

        response = self._send(method, url, token=token, params=params, json_body=json_body)
        if response.status_code == 401 and self._tokens is not None:
            logger.info("%s %s returned 401; refreshing token", method, url)
            refreshed = self._tokens.refresh_token()
            if refreshed:
                response = self._send(method, url, token=refreshed, params=params, json_body=json_body)

        body = _decode(response)
        if response.status_code == 401:
            raise AuthenticationError(f"{method} {url} unauthorized")
        if response.status_code == 403:
            logger.warning("%s %s forbidden: %s", method, url, sanitize(body))
            raise AuthorizationError(f"{method} {url} forbidden")
        if response.status_code >= 400:
            logger.error(
                "%s %s -> %s request=%s response=%s",
                method, url, response.status_code, sanitize(json_body), sanitize(body),
            )
            raise ApiError(
                f"{method} {url} returned {response.status_code}", status_code=response.status_code, body=body
            )
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return body

    async def arequest(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Any = None,
    ) -> Any:
        return await asyncio.to_thread(self.request, method, path, params=params, json_body=json_body)

    def close(self) -> None:
        self._session.close()
