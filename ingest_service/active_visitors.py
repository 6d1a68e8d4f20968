"""
Active-visitor presence.

One sorted set, scored by unix time, holds the session tokens seen recently.
Counting purges members older than the window before reading the cardinality.
"""

import logging
import time
from typing import Callable, Optional

from .fail_open import fail_open
from .redis_client import KeyBuilder

logger = logging.getLogger(__name__)

ACTIVE_VISITORS_KEY = "active_visitors"
DEFAULT_ACTIVE_WINDOW_SECONDS = 300


class ActiveVisitors:
    """Sliding-window presence counter."""

    def __init__(
        self,
        client,
        window_seconds: int = DEFAULT_ACTIVE_WINDOW_SECONDS,
        key_builder: Optional[KeyBuilder] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.client = client
        self.window_seconds = window_seconds
        self.key = (key_builder or KeyBuilder())(ACTIVE_VISITORS_KEY)
        self._clock = clock or time.time

    @fail_open(default=False, operation="presence.mark_active")
    def mark_active(self, token: str) -> bool:
        """Record ``token`` as active now. Returns False on backend failure."""
        self.client.zadd(self.key, {token: self._clock()})
        return True

    @fail_open(default=None, operation="presence.count_active")
    def count_active(self) -> Optional[int]:
        """Number of tokens active within the window.

        Returns None when the backend is unavailable; callers must show that
        as "unknown", not as zero.
        """
        now = self._clock()
        cutoff = now - self.window_seconds

        pipe = self.client.pipeline(transaction=True)
        pipe.zremrangebyscore(self.key, "-inf", f"({cutoff}")
        pipe.zcount(self.key, cutoff, "+inf")
        removed, count = pipe.execute()

        if removed:
            logger.debug(f"Purged {removed} stale active visitors")
        return int(count)
