"""
In-memory TTL cache for Lambda containers.

Module-level instances survive warm invocations of the same container, which
is enough to keep repeat price and exchange-rate lookups off the upstream
APIs. Nothing here is shared between containers.
"""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple


class TTLCache:
    """
    Bounded key/value cache with per-entry expiry.

    When full, the oldest inserted entry is evicted first. Safe to use from
    worker threads started with ``asyncio.to_thread``.
    """

    def __init__(
        self,
        max_entries: int = 100,
        default_ttl: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self.misses += 1
                return None

            self.hits += 1
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_entries:
                self._entries.popitem(last=False)

            expires_at = self._clock() + (self.default_ttl if ttl is None else ttl)
            self._entries[key] = (value, expires_at)

    def get_or_set(
        self, key: str, compute: Callable[[], Any], ttl: Optional[float] = None
    ) -> Tuple[Any, bool]:
        """
        Return ``(value, from_cache)``, computing and storing on a miss.

        ``compute`` runs outside the lock. Exceptions from it propagate and
        nothing is stored; a None result is returned but not cached.
        """
        cached = self.get(key)
        if cached is not None:
            return cached, True

        value = compute()
        if value is not None:
            self.set(key, value, ttl)
        return value, False

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def clear_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": len(self._entries),
            "hit_rate": self.hits / lookups if lookups else 0.0,
        }
