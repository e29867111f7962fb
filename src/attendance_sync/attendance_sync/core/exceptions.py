from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when the server still rejects the token after a refresh."""


class AuthorizationError(DomainError):
    """Raised when the server forbids an action (HTTP 403). Not retried."""


class StoreError(DomainError):
    """Raised when the local store fails for a reason other than a duplicate key."""


class SyncError(DomainError):
    """Base class for failures talking to the server."""


class NetworkError(SyncError):
    """No response was received (offline, timeout, DNS, refused)."""


class ApiError(SyncError):
    def __init__(self, message: str, *, status_code: int, body: Optional[Any] = None):
        super().__init__(message)
        self.status_code = int(status_code)
        self.body = body
