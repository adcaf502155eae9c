"""
Retry policy for network operations outside the install core.

The install pipeline itself never retries; callers such as the CLI and the
registry updater wrap operations with this backoff policy.
"""

import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime


class ExponentialBackoff:
    """Exponential backoff with jitter, capped at max_delay."""

    def __init__(self, base_delay: float = 1.0, max_delay: float = 60.0, max_retries: int = 3):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_retries = max_retries

    def calculate_delay(self, attempt: int) -> float:
        """Delay before retry number attempt + 1."""
        delay = min(self.base_delay * (2**attempt), self.max_delay)
        # Add jitter (±25%)
        jitter = delay * 0.25 * (random.random() * 2 - 1)
        return max(0, delay + jitter)

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_retries

    def retry_after_delay(self, retry_after: str | None, attempt: int) -> float:
        """
        Delay requested by a Retry-After header, capped at max_delay.

        Accepts both delta-seconds and HTTP-date forms. A missing or
        unparsable header falls back to calculate_delay(attempt).
        """
        seconds = _parse_retry_after(retry_after)
        if seconds is None:
            return self.calculate_delay(attempt)
        return min(max(0.0, seconds), self.max_delay)


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    value = value.strip()
    try:
        return float(value)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return (when - datetime.now(timezone.utc)).total_seconds()
