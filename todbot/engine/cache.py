"""
todbot.engine.cache — In-Memory Caches
=======================================

Two small thread-safe caches used above the store:

* :class:`LRUCache` — bounded read cache (rating counts).  Advisory only:
  writers invalidate their key in the same call, and nothing ever makes a
  concurrency decision from a cached value.  Readers that fill it after a
  store read use :meth:`LRUCache.set_if_unchanged` so an invalidation that
  lands mid-read is not undone.
* :class:`PendingSubmissionCache` — parks a submission the similarity gate
  flagged until the member confirms or cancels it.
"""

from __future__ import annotations

import secrets
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

# Pending submissions expire after 15 minutes
PENDING_TTL_SECONDS = 15 * 60


class LRUCache(Generic[K, V]):
    """Least-recently-used cache with a fixed capacity."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("LRUCache capacity must be positive")
        self.capacity = capacity
        self._data: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()
        # bumped by every delete/clear
        self._generation = 0

    def get(self, key: K) -> V | None:
        with self._lock:
            if key not in self._data:
                return None
            self._data.move_to_end(key)
            return self._data[key]

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def set(self, key: K, value: V) -> None:
        with self._lock:
            self._store(key, value)

    def set_if_unchanged(self, key: K, value: V, generation: int) -> bool:
        """Store *value* only if nothing was invalidated since *generation*.

        Take :attr:`generation` before reading the source of *value*; a
        delete or clear in between makes the read possibly stale and the
        value is dropped.
        """
        with self._lock:
            if self._generation != generation:
                return False
            self._store(key, value)
            return True

    def delete(self, key: K) -> bool:
        with self._lock:
            self._generation += 1
            return self._data.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._data.clear()

    def _store(self, key: K, value: V) -> None:
        if key in self._data:
            self._data.move_to_end(key)
        elif len(self._data) >= self.capacity:
            self._data.popitem(last=False)
        self._data[key] = value

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


@dataclass(frozen=True, slots=True)
class PendingSubmission:
    """A submission held back by the similarity warning."""

    category: str
    text: str
    submitter_id: int
    origin_guild_id: int | None = None


class PendingSubmissionCache:
    """Token-keyed holding area with expiry.

    Tokens go into button ``custom_id`` values, so they are random and
    short.  Expired entries are purged lazily on every access.
    """

    def __init__(
        self,
        ttl_seconds: float = PENDING_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, PendingSubmission]] = {}
        self._lock = threading.Lock()

    def store(self, pending: PendingSubmission) -> str:
        """Hold *pending* and return its token."""
        with self._lock:
            self._purge()
            token = secrets.token_hex(8)
            while token in self._entries:
                token = secrets.token_hex(8)
            self._entries[token] = (self._clock() + self.ttl_seconds, pending)
            return token

    def pop(self, token: str) -> PendingSubmission | None:
        """Remove and return the entry for *token* (``None`` if gone)."""
        with self._lock:
            self._purge()
            entry = self._entries.pop(token, None)
            return entry[1] if entry else None

    def peek(self, token: str) -> PendingSubmission | None:
        with self._lock:
            self._purge()
            entry = self._entries.get(token)
            return entry[1] if entry else None

    def purge(self) -> int:
        """Drop expired entries now.  Returns how many were dropped."""
        with self._lock:
            return self._purge()

    def _purge(self) -> int:
        now = self._clock()
        expired = [token for token, (expires, _) in self._entries.items() if expires <= now]
        for token in expired:
            del self._entries[token]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            self._purge()
            return len(self._entries)
