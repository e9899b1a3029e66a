"""
Retry primitives for registry requests.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime


@dataclass(frozen=True)
class RetryConfig:
    """
    Retry policy for a single logical request.

    ``retries`` is the number of extra attempts after the first one, so a
    request is tried at most ``retries + 1`` times.
    """

    retries: int = 2
    backoff: float = 0.5
    max_backoff: float = 30.0
    retryable_statuses: tuple[int, ...] = (408, 429, 500, 502, 503, 504)

    def __post_init__(self) -> None:
        if self.retries < 0:
            raise ValueError("retries cannot be negative")
        if self.backoff < 0:
            raise ValueError("backoff cannot be negative")
        if self.max_backoff < self.backoff:
            raise ValueError("max_backoff must be >= backoff")

    @property
    def attempts(self) -> int:
        return self.retries + 1

    def should_retry_status(self, status: int) -> bool:
        return status in self.retryable_statuses

    def delay(self, attempt: int, retry_after: float | None = None) -> float:
        """
        Delay before the attempt following ``attempt`` (1-based).

        Exponential backoff with +/-20% jitter, capped at ``max_backoff``.
        A server supplied ``Retry-After`` wins when it is longer.
        """
        delay = self.backoff * (2 ** max(0, attempt - 1)) * random.uniform(0.8, 1.2)
        if retry_after is not None:
            delay = max(delay, retry_after)
        return min(delay, self.max_backoff)


def parse_retry_after(value: str | None, *, now: datetime | None = None) -> float | None:
    """
    Parse a Retry-After header into seconds.

    Accepts delta-seconds or an HTTP date. Returns None when absent or invalid.
    """
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(0.0, seconds)

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


__all__ = ["RetryConfig", "parse_retry_after"]
