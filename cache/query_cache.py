"""
Query result cache with stale times, coalescing and mutation-driven invalidation.

Entries are grouped into partitions (the resource component of the cache
key). A completed mutation invalidates whole partitions through the static
rules in ``cache.invalidation``.

Handlers share one instance per invocation. ``utils.decorators.lambda_handler``
clears it on entry, so rows written by other Lambdas or by the app itself
are never served stale from a warm container.
"""

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from cache.coalescer import Producer, RequestCoalescer
from cache.invalidation import get_invalidation_keys
from cache.keys import create_cache_key, partition_of

logger = logging.getLogger(__name__)

DEFAULT_STALE_TIME = 30.0

# Seconds before a partition is refetched
STALE_TIMES: Dict[str, float] = {
    "crypto_prices": 60.0,
    "stock_quotes": 60.0,
    "exchange_rates": 3600.0,
    "category_rules": 300.0,
    "budget_categories": 300.0,
    "groq_quota_state": 15.0,
    "deepseek_quota_state": 15.0,
    "grok_quota_state": 15.0,
}


@dataclass
class _Entry:
    value: Any
    fetched_at: float
    partition: str


class QueryCache:
    """
    Caches query results by key and refetches them once stale.

    Concurrent fetches of the same key share one producer call through a
    ``RequestCoalescer``. If a partition is invalidated while a fetch for it
    is running, the result is returned to the callers but not stored.
    """

    def __init__(
        self,
        coalescer: Optional[RequestCoalescer] = None,
        default_stale_time: float = DEFAULT_STALE_TIME,
        stale_times: Optional[Dict[str, float]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.coalescer = coalescer or RequestCoalescer()
        self.default_stale_time = default_stale_time
        self.stale_times = dict(STALE_TIMES if stale_times is None else stale_times)
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._generations: Dict[str, int] = defaultdict(int)
        self.hits = 0
        self.misses = 0

    def stale_time_for(self, partition: str) -> float:
        return self.stale_times.get(partition, self.default_stale_time)

    async def fetch(
        self,
        method: str,
        resource: str,
        producer: Producer,
        filters: Optional[Dict[str, Any]] = None,
        range: Optional[Sequence[int]] = None,
        stale_time: Optional[float] = None,
    ) -> Any:
        """Return a fresh cached value for the query or fetch it."""
        key = create_cache_key(method, resource, filters, range)
        max_age = self.stale_time_for(resource) if stale_time is None else stale_time

        entry = self._entries.get(key)
        if entry is not None and self._clock() - entry.fetched_at < max_age:
            self.hits += 1
            return entry.value

        self.misses += 1
        generation = self._generations[resource]
        value = await self.coalescer.fetch(key, producer)

        if self._generations[resource] == generation:
            self._entries[key] = _Entry(value, self._clock(), partition_of(key))
        else:
            logger.debug("Discarding result for %s invalidated mid-fetch", key)
        return value

    async def select(
        self,
        table,
        filters: Optional[Dict[str, Any]] = None,
        range: Optional[Sequence[int]] = None,
        order: Optional[str] = None,
        columns: str = "*",
        stale_time: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """
        Cached ``table.select`` for a ``SupabaseTable``.

        The blocking HTTP call runs in a worker thread so several selects can
        be awaited together.
        """
        key_filters = dict(filters or {})
        if order:
            key_filters["order"] = order
        if columns != "*":
            key_filters["select"] = columns

        def producer():
            return asyncio.to_thread(
                table.select, columns=columns, filters=filters, order=order, range=range
            )

        return await self.fetch(
            "GET", table.name, producer, filters=key_filters, range=range, stale_time=stale_time
        )

    def invalidate_keys(self, partitions: Iterable[str]) -> int:
        """Drop every entry in the given partitions; return how many went."""
        targets = set(partitions)
        for partition in targets:
            self._generations[partition] += 1

        stale = [key for key, entry in self._entries.items() if entry.partition in targets]
        for key in stale:
            del self._entries[key]

        if stale:
            logger.debug("Invalidated %d cached queries in %s", len(stale), sorted(targets))
        return len(stale)

    def invalidate(self, mutation_type: Any) -> List[str]:
        """Invalidate the partitions mapped to ``mutation_type`` and return them."""
        keys = get_invalidation_keys(mutation_type)
        self.invalidate_keys(keys)
        return keys

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": len(self._entries),
            "coalescer": self.coalescer.stats(),
        }


# Cleared at the start of every handler invocation
query_cache = QueryCache()
