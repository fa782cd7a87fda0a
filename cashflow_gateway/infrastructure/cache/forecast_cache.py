"""In-memory TTL cache for account forecasts"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Optional, Tuple

from cashflow_gateway.domain.models import CompleteForecast
from cashflow_gateway.infrastructure.observability.metrics import cache_hit_counter, cache_miss_counter

CacheKey = Tuple[str, str, date, date]


@dataclass
class _CacheEntry:
    data: CompleteForecast
    stored_at: float


class ForecastCache:
    """
    Forecasts keyed by (workspace, account, window start, window end).

    Entries expire ttl_seconds after they are stored and are dropped on the
    next read. The clock is injectable so expiry can be tested without sleeping.
    Sync endpoints run in a threadpool, so every access holds the lock.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, _CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _is_fresh(self, entry: _CacheEntry) -> bool:
        return self._clock() - entry.stored_at < self.ttl_seconds

    def get(self, workspace_id: str, account_id: str, start: date, end: date) -> Optional[CompleteForecast]:
        key = (workspace_id, account_id, start, end)
        with self._lock:
            entry = self._entries.get(key)
            fresh = entry is not None and self._is_fresh(entry)
            if fresh:
                self.hits += 1
            else:
                if entry is not None:
                    self._entries.pop(key, None)
                self.misses += 1
            hit_rate = self.hit_rate

        if fresh:
            cache_hit_counter.inc()
            logging.debug(
                "Forecast cache hit",
                extra={"workspace_id": workspace_id, "account_id": account_id, "hit_rate": hit_rate},
            )
            return entry.data

        if entry is not None:
            logging.debug("Forecast cache entry expired", extra={"workspace_id": workspace_id, "account_id": account_id})
        cache_miss_counter.inc()
        return None

    def set(self, workspace_id: str, account_id: str, start: date, end: date, data: CompleteForecast) -> None:
        with self._lock:
            self._entries[(workspace_id, account_id, start, end)] = _CacheEntry(data=data, stored_at=self._clock())

    def _drop(self, matches: Callable[[CacheKey], bool]) -> int:
        with self._lock:
            keys = [k for k in self._entries if matches(k)]
            for key in keys:
                self._entries.pop(key, None)
        return len(keys)

    def invalidate(self, workspace_id: str, account_id: str) -> int:
        """Drop every cached window for one account; returns the number of entries removed"""
        cleared = self._drop(lambda k: k[0] == workspace_id and k[1] == account_id)
        if cleared:
            logging.info("Forecast cache invalidated", extra={"workspace_id": workspace_id, "account_id": account_id})
        return cleared

    def invalidate_workspace(self, workspace_id: str) -> int:
        cleared = self._drop(lambda k: k[0] == workspace_id)
        if cleared:
            logging.info(
                "Workspace forecast cache invalidated",
                extra={"workspace_id": workspace_id, "entries_cleared": cleared},
            )
        return cleared

    def clear(self) -> int:
        """Drop every entry; returns the number of entries removed"""
        with self._lock:
            cleared = len(self._entries)
            self._entries.clear()
        logging.info("Forecast cache cleared", extra={"entries_cleared": cleared})
        return cleared

    @property
    def hit_rate(self) -> int:
        """Hit rate as a whole percentage"""
        total = self.hits + self.misses
        return round(self.hits / total * 100) if total else 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": self.hit_rate,
            }
