"""
Request coalescing for concurrent identical fetches.

When several coroutines ask for the same key while a fetch for it is still
running, they all await that one fetch instead of starting their own. The
registration is dropped as soon as the fetch settles, so results are never
cached here and failures are never remembered.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict

logger = logging.getLogger(__name__)

Producer = Callable[[], Awaitable[Any]]


class RequestCoalescer:
    """
    Deduplicates in-flight async fetches by key.

    All bookkeeping runs on the event loop thread between suspension points,
    so the in-flight map needs no lock. Instances are not meant to be shared
    across event loops.
    """

    def __init__(self):
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._requests = 0
        self._coalesced = 0

    async def fetch(self, key: str, producer: Producer) -> Any:
        """
        Return the result of ``producer()`` for ``key``, sharing it with any
        concurrent callers of the same key.

        Every waiter sees the same value, or the same exception if the
        producer fails.
        """
        self._requests += 1

        task = self._in_flight.get(key)
        if task is not None:
            self._coalesced += 1
            logger.debug("Coalesced request for %s", key)
        else:
            task = asyncio.ensure_future(self._run(key, producer))
            self._in_flight[key] = task

        # shield so a cancelled waiter does not cancel the shared fetch
        return await asyncio.shield(task)

    async def _run(self, key: str, producer: Producer) -> Any:
        try:
            return await producer()
        finally:
            # Drop the entry before any waiter resumes with the outcome
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def stats(self) -> Dict[str, int]:
        return {
            "requests": self._requests,
            "coalesced": self._coalesced,
            "in_flight": len(self._in_flight),
        }
