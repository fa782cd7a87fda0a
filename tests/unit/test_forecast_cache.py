"""Unit tests for the forecast TTL cache"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from cashflow_gateway.domain.models import CompleteForecast, Confidence, ForecastResult, ForecastSettings
from cashflow_gateway.infrastructure.cache.forecast_cache import ForecastCache

START = date(2026, 3, 1)
END = date(2026, 3, 31)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ForecastCache:
    return ForecastCache(ttl_seconds=300, clock=clock)


def _complete(balance="100") -> CompleteForecast:
    return CompleteForecast(
        forecast=ForecastResult(
            forecasts=[],
            average_daily_spending=Decimal("0"),
            conservative_daily_spending=Decimal("0"),
            spending_confidence=Confidence.NONE,
            days_analyzed=0,
            should_display=False,
        ),
        payment_risks=[],
        current_balance=Decimal(balance),
        settings=ForecastSettings(),
        calculated_at=datetime(2026, 3, 10, tzinfo=timezone.utc),
    )


def test_miss_then_hit(cache: ForecastCache):
    """Test stored forecast is served until it expires"""
    assert cache.get("ws", "acc", START, END) is None

    data = _complete()
    cache.set("ws", "acc", START, END, data)

    assert cache.get("ws", "acc", START, END) is data
    assert cache.stats() == {"size": 1, "hits": 1, "misses": 1, "hit_rate": 50}


def test_entries_expire_after_ttl(cache: ForecastCache, clock: FakeClock):
    """Test expired entries are dropped on read"""
    cache.set("ws", "acc", START, END, _complete())

    clock.now += 299
    assert cache.get("ws", "acc", START, END) is not None

    clock.now += 1
    assert cache.get("ws", "acc", START, END) is None
    assert cache.stats()["size"] == 0


def test_windows_are_cached_separately(cache: ForecastCache):
    """Test different date windows for one account do not collide"""
    march = _complete("1")
    april = _complete("2")
    cache.set("ws", "acc", START, END, march)
    cache.set("ws", "acc", date(2026, 4, 1), date(2026, 4, 30), april)

    assert cache.get("ws", "acc", START, END) is march
    assert cache.get("ws", "acc", date(2026, 4, 1), date(2026, 4, 30)) is april


def test_invalidate_account(cache: ForecastCache):
    """Test invalidation removes every window of one account only"""
    cache.set("ws", "acc", START, END, _complete())
    cache.set("ws", "acc", date(2026, 4, 1), date(2026, 4, 30), _complete())
    cache.set("ws", "other", START, END, _complete())

    assert cache.invalidate("ws", "acc") == 2
    assert cache.get("ws", "acc", START, END) is None
    assert cache.get("ws", "other", START, END) is not None


def test_invalidate_workspace(cache: ForecastCache):
    """Test workspace invalidation leaves other workspaces alone"""
    cache.set("ws", "a", START, END, _complete())
    cache.set("ws", "b", START, END, _complete())
    cache.set("ws2", "a", START, END, _complete())

    assert cache.invalidate_workspace("ws") == 2
    assert cache.stats()["size"] == 1

    assert cache.clear() == 1
    assert cache.stats()["size"] == 0


def test_concurrent_access_on_expired_entry(cache: ForecastCache, clock: FakeClock):
    """Test many threads reading, writing and invalidating one expired key never fail"""
    cache.set("ws", "acc", START, END, _complete())
    clock.now += 301

    def worker(i: int):
        for _ in range(200):
            cache.get("ws", "acc", START, END)
            if i % 2:
                cache.set("ws", "acc", START, END, _complete())
            else:
                cache.invalidate("ws", "acc")

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(worker, i) for i in range(8)]
        for future in futures:
            future.result()

    stats = cache.stats()
    assert stats["hits"] + stats["misses"] == 8 * 200
