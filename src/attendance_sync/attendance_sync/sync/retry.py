from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..common.datetime_utils import now_ms
from ..core.constants import RETRY_INITIAL_DELAY_MS, RETRY_MAX_ATTEMPTS, RETRY_MAX_DELAY_MS


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: ``min(initial * 2**attempt, max)`` milliseconds."""

    initial_delay_ms: int = RETRY_INITIAL_DELAY_MS
    max_delay_ms: int = RETRY_MAX_DELAY_MS
    max_attempts: int = RETRY_MAX_ATTEMPTS

    def next_delay(self, attempt: int) -> int:
        attempt = max(0, int(attempt))
        # Past this exponent the product is over any sane cap anyway.
        if attempt >= 32:
            return self.max_delay_ms
        return min(self.initial_delay_ms * (2 ** attempt), self.max_delay_ms)

    def should_retry(self, attempt: int, max_attempts: Optional[int] = None) -> bool:
        limit = self.max_attempts if max_attempts is None else int(max_attempts)
        return int(attempt) < limit

    def next_retry_at(self, attempt: int, now: Optional[int] = None) -> int:
        base = now_ms() if now is None else int(now)
        return base + self.next_delay(attempt)

    def retry_delays(self) -> List[int]:
        return [self.next_delay(n) for n in range(self.max_attempts)]


DEFAULT_RETRY_POLICY = RetryPolicy()
