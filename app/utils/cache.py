"""
In-memory TTL cache and debounced update batching.

Shields the rate limited spreadsheet API from repeated reads and coalesces
many small sheet writes into one flush. Built once per process (see
app.core.services) and shared by every request handler. All state is touched
from the event loop only, so no locking is needed.
"""

import asyncio
import logging
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

FlushCallback = Callable[[List[Any]], Awaitable[Any]]


class CACHE_KEYS:
    STATS = "stats"
    SHEET_DATA = "sheet_data"
    SHEET_STATS = "sheet_stats"
    CERTIFICATES = "certificates"
    EVENTS = "events"
    LOGS = "logs"


class BATCH_KEYS:
    SHEET_UPDATES = "sheet_updates"


class SyncCache:
    def __init__(
        self,
        default_ttl: float = 30.0,
        batch_delay: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._pending: Dict[str, List[Any]] = {}
        self._timers: Dict[str, asyncio.Task] = {}
        self._callbacks: Dict[str, FlushCallback] = {}
        self._default_ttl = default_ttl
        self._batch_delay = batch_delay
        self._clock = clock

    # Cache

    def get(self, key: str) -> Optional[Any]:
        """Get cached value if present and not expired"""
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._clock() - entry["timestamp"] > entry["ttl"]:
            del self._cache[key]
            return None
        return entry["data"]

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> None:
        self._cache[key] = {
            "data": data,
            "timestamp": self._clock(),
            "ttl": ttl if ttl is not None else self._default_ttl,
        }

    def invalidate(self, key: str) -> None:
        self._cache.pop(key, None)

    def invalidate_pattern(self, pattern: str) -> None:
        """Drop every key matching the regular expression ``pattern``"""
        regex = re.compile(pattern)
        for key in [key for key in self._cache if regex.search(key)]:
            del self._cache[key]

    def clear(self) -> None:
        self._cache.clear()

    # Batching

    def queue_update(self, batch_key: str, update: Any, on_flush: FlushCallback) -> None:
        """
        Append ``update`` to the batch and restart its quiet-period timer.
        When the timer fires all queued items are handed to ``on_flush`` in
        insertion order. If ``on_flush`` raises, the items are put back ahead
        of anything queued meanwhile, so ``on_flush`` must be idempotent.
        """
        self._pending.setdefault(batch_key, []).append(update)
        self._callbacks[batch_key] = on_flush

        timer = self._timers.get(batch_key)
        if timer is not None:
            timer.cancel()
        self._timers[batch_key] = asyncio.create_task(self._flush_later(batch_key, on_flush))

    async def _flush_later(self, batch_key: str, on_flush: FlushCallback) -> None:
        await asyncio.sleep(self._batch_delay)
        # Once running, the flush can no longer be cancelled by a newer queue_update
        if self._timers.get(batch_key) is asyncio.current_task():
            del self._timers[batch_key]

        updates = self._take(batch_key)
        if not updates:
            return
        try:
            await on_flush(updates)
            logger.info(f"Flushed {len(updates)} queued updates for '{batch_key}'")
        except Exception as e:
            logger.error(f"Batch update for '{batch_key}' failed, re-queueing {len(updates)} items: {e}")
            self._requeue(batch_key, updates)

    def _take(self, batch_key: str) -> List[Any]:
        updates = self._pending.get(batch_key) or []
        self._pending[batch_key] = []
        return updates

    def _requeue(self, batch_key: str, updates: List[Any]) -> None:
        self._pending[batch_key] = updates + self._pending.get(batch_key, [])

    def pending_count(self, batch_key: str) -> int:
        return len(self._pending.get(batch_key, []))

    async def flush_updates(self, batch_key: str, on_flush: FlushCallback) -> Any:
        """
        Cancel the pending timer and flush now, returning what ``on_flush``
        returns (None when nothing was queued). Failures are re-queued and
        re-raised.
        """
        timer = self._timers.pop(batch_key, None)
        if timer is not None:
            timer.cancel()

        updates = self._take(batch_key)
        if not updates:
            return None
        try:
            return await on_flush(updates)
        except Exception:
            self._requeue(batch_key, updates)
            raise

    async def flush_all(self) -> None:
        """Flush every batch with its last registered callback (used on shutdown)"""
        for batch_key in list(self._pending):
            if not self._pending[batch_key]:
                continue
            try:
                await self.flush_updates(batch_key, self._callbacks[batch_key])
            except Exception as e:
                logger.error(f"Final flush for '{batch_key}' failed: {e}")
