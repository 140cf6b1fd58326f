from __future__ import annotations

import threading
import time

import pytest

from county_cases.common.errors import ReferenceUnavailableError
from county_cases.pipeline.reference_cache import ReferenceCache


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class CountingLoader:
    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


def test_get_within_ttl_queries_source_once():
    loader = CountingLoader({12345, 1001})
    cache = ReferenceCache(loader, ttl_seconds=60, clock=FakeClock())

    first = cache.get()
    second = cache.get()

    assert loader.calls == 1
    assert first.refreshed is True
    assert second.refreshed is False
    assert second.refs is first.refs
    assert 12345 in second.refs


def test_get_after_ttl_replaces_set_wholesale():
    clock = FakeClock()
    loader = CountingLoader({1}, {2, 3})
    cache = ReferenceCache(loader, ttl_seconds=60, clock=clock)

    original = cache.get().refs
    clock.now += 61
    refreshed = cache.get().refs

    assert loader.calls == 2
    assert original.ids == frozenset({1})
    assert refreshed.ids == frozenset({2, 3})
    assert refreshed.fetched_at == clock.now


def test_failed_refresh_keeps_stale_set():
    clock = FakeClock()
    loader = CountingLoader({1}, RuntimeError("db down"))
    cache = ReferenceCache(loader, ttl_seconds=60, clock=clock)
    cache.get()
    clock.now += 120

    lookup = cache.get()

    assert lookup.available
    assert lookup.stale
    assert lookup.refs.ids == frozenset({1})
    assert str(lookup.error) == "db down"


def test_failed_refresh_retries_on_next_get():
    clock = FakeClock()
    loader = CountingLoader({1}, RuntimeError("db down"), {4})
    cache = ReferenceCache(loader, ttl_seconds=60, clock=clock)
    cache.get()
    clock.now += 120

    assert cache.get().stale
    assert cache.get().refs.ids == frozenset({4})
    assert loader.calls == 3


def test_failed_first_refresh_is_unavailable():
    cache = ReferenceCache(CountingLoader(RuntimeError("boom")), clock=FakeClock())

    lookup = cache.get()

    assert not lookup.available
    assert not lookup.stale
    with pytest.raises(ReferenceUnavailableError):
        lookup.require()


def test_invalidate_forces_refresh():
    loader = CountingLoader({1})
    cache = ReferenceCache(loader, clock=FakeClock())
    cache.get()
    cache.invalidate()
    cache.get()

    assert loader.calls == 2


def test_concurrent_get_shares_one_refresh():
    started = threading.Event()
    calls = []

    def slow_loader():
        calls.append(1)
        started.set()
        time.sleep(0.05)
        return {7}

    cache = ReferenceCache(slow_loader, ttl_seconds=60)
    results = []

    def worker():
        results.append(cache.get().refs)

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
    assert len(results) == 5
    assert all(refs is results[0] for refs in results)


def test_concurrent_get_shares_one_failed_refresh():
    calls = []

    def failing_loader():
        calls.append(1)
        time.sleep(0.2)
        raise RuntimeError("db down")

    cache = ReferenceCache(failing_loader, ttl_seconds=60)
    results = []

    def worker():
        results.append(cache.get())

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
    assert len(results) == 5
    assert all(not lookup.available for lookup in results)
    assert all(str(lookup.error) == "db down" for lookup in results)


def test_sequential_get_after_failed_refresh_tries_again():
    loader = CountingLoader(RuntimeError("db down"), {9})
    cache = ReferenceCache(loader, clock=FakeClock())

    assert not cache.get().available
    assert cache.get().refs.ids == frozenset({9})
    assert loader.calls == 2
