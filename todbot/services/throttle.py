"""
todbot.services.throttle — Sliding-window per-user rate limits
===============================================================

Caps how often one member can pull prompts or file submissions.  State is
in-memory and per process; a restart forgets every window.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict
from collections.abc import Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding-window limiter keyed by user ID.

    - Up to ``max_requests`` allowed calls per user per ``window`` seconds.
    - Denied calls are not recorded, so hammering the button does not
      extend the wait.
    """

    def __init__(
        self,
        max_requests: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._timestamps: dict[int, list[float]] = defaultdict(list)
        self._lock = threading.Lock()

    def _prune(self, user_id: int, now: float) -> list[float]:
        cutoff = now - self.window
        stamps = [t for t in self._timestamps[user_id] if t > cutoff]
        self._timestamps[user_id] = stamps
        return stamps

    def is_allowed(self, user_id: int) -> bool:
        """Return True and record the call, or False if the user is over the limit."""
        with self._lock:
            now = self._clock()
            stamps = self._prune(user_id, now)
            if len(stamps) >= self.max_requests:
                logger.debug("Rate limit hit for user %d", user_id)
                return False
            stamps.append(now)
            return True

    def retry_after(self, user_id: int) -> float:
        """Seconds until the user's next call would be allowed (0 if now)."""
        with self._lock:
            now = self._clock()
            stamps = self._prune(user_id, now)
            if len(stamps) < self.max_requests:
                return 0.0
            return max(stamps[0] + self.window - now, 0.0)

    def reset(self, user_id: int) -> None:
        with self._lock:
            self._timestamps.pop(user_id, None)

    def cleanup(self) -> int:
        """Forget users with no calls inside the window.  Returns how many."""
        with self._lock:
            now = self._clock()
            idle = [uid for uid in self._timestamps if not self._prune(uid, now)]
            for uid in idle:
                del self._timestamps[uid]
            return len(idle)
