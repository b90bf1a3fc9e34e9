"""
Mosaic Backend — Sliding Window Rate Limiter
==============================================

What:  Per-client sliding window limiter for contribution uploads.
How:   Tracks request timestamps per client key in memory.
Who:   Owned by the app (app.state.contribution_limiter) and applied by the
       enforce_contribution_rate_limit dependency, after authentication.

Algorithm: Sliding Window Log
    1. Each client key gets a list of request timestamps
    2. On each request, drop timestamps older than the window
    3. If remaining count >= limit, reject with RateLimitExceededError (429)
    4. Otherwise, record the current timestamp and allow the request

    Default: 5 requests per rolling 60 seconds. The 5th request inside the
    window succeeds; the 6th is rejected.

Scaling limitation:
    State lives in this process only. Several workers or instances each keep
    their own counters, so the effective limit multiplies with the number of
    processes.
"""

import logging
import time
from collections import defaultdict
from typing import Callable, Dict, List

from mosaic.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

# Inactive keys are purged every this many recorded requests
_CLEANUP_EVERY = 1000


class SlidingWindowRateLimiter:
    """
    In-memory sliding window rate limiter.

    Args:
        limit: Maximum requests allowed per window.
        window: Window length in seconds.
        clock: Time source returning seconds (patched in tests).

    Safe for single-process async servers: hit() never awaits, so two
    coroutines cannot interleave inside it.
    """

    def __init__(self, limit: int, window: int, clock: Callable[[], float] = time.time):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._recorded = 0

    def hit(self, key: str) -> None:
        """
        Record one request for `key`.

        Raises:
            RateLimitExceededError: `key` already made `limit` requests in the window.
        """
        now = self._clock()
        window_start = now - self.window

        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps

        if len(timestamps) >= self.limit:
            retry_after = int(timestamps[0] + self.window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key,
                len(timestamps),
                self.window,
            )
            raise RateLimitExceededError(retry_after=retry_after, context={"client": key})

        timestamps.append(now)

        self._recorded += 1
        if self._recorded % _CLEANUP_EVERY == 0:
            self._cleanup_inactive(window_start)

    def reset(self) -> None:
        """Forget every recorded request."""
        self._requests.clear()
        self._recorded = 0

    def _cleanup_inactive(self, window_start: float) -> None:
        """Remove keys that have no requests within the current window."""
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or max(timestamps) <= window_start
        ]
        for key in inactive:
            del self._requests[key]

        if inactive:
            logger.debug("Cleaned up %d inactive rate limit entries", len(inactive))
