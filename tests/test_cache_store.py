"""Unit tests for CacheStore."""
import threading

import pytest

from processor.event_processor import EventProcessor
from storage.cache_store import CacheStore, NullCacheStore


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def events():
    return EventProcessor().normalize_rows([
        ["t1", "2024-03-01", "Title A"],
        ["t2", "2024-02-01", "Title B"],
    ])


def test_get_empty_cache(clock):
    """Test that an empty cache returns None."""
    cache = CacheStore(clock=clock)

    assert cache.get() is None


def test_put_then_get(clock, events):
    """Test that stored events are returned while fresh."""
    cache = CacheStore(clock=clock)
    cache.put(events)

    clock.advance(299)

    assert list(cache.get()) == events


def test_entry_expires_after_ttl(clock, events):
    """Test that an entry is dropped once the TTL has elapsed."""
    cache = CacheStore(clock=clock)
    cache.put(events)

    clock.advance(300)

    assert cache.get() is None
    # Expired entry was cleared, not just hidden
    clock.now -= 300
    assert cache.get() is None


def test_put_stores_snapshot(clock, events):
    """Test that later changes to the caller's list do not leak into the cache."""
    cache = CacheStore(clock=clock)
    cache.put(events)

    events.clear()

    assert len(cache.get()) == 2


def test_put_replaces_entry_and_resets_clock(clock, events):
    """Test that a new put replaces the entry wholesale."""
    cache = CacheStore(clock=clock)
    cache.put(events)
    clock.advance(200)
    cache.put(events[:1])
    clock.advance(200)

    assert [e.title for e in cache.get()] == ["Title A"]


def test_invalidate_is_idempotent(clock, events):
    """Test invalidation clears the entry and can be repeated."""
    cache = CacheStore(clock=clock)
    cache.put(events)

    cache.invalidate()
    cache.invalidate()

    assert cache.get() is None


def test_custom_ttl(clock, events):
    """Test a non-default freshness window."""
    cache = CacheStore(ttl_seconds=10, clock=clock)
    cache.put(events)

    clock.advance(9.5)
    assert cache.get() is not None

    clock.advance(0.5)
    assert cache.get() is None


def test_null_cache_never_holds(events):
    """Test that the null cache never returns entries."""
    cache = NullCacheStore()
    cache.put(events)

    assert cache.get() is None
    cache.invalidate()


def test_concurrent_access_sees_whole_snapshots():
    """Test that readers racing writers only ever see a complete stored snapshot."""
    processor = EventProcessor()
    snapshots = [
        tuple(processor.normalize_rows(
            [["t", "2024-01-01", f"S{k}-{i}"] for i in range(50 + k)]
        ))
        for k in range(5)
    ]
    cache = CacheStore()
    start = threading.Barrier(8)
    seen = []
    errors = []

    def writer(k):
        start.wait()
        for _ in range(200):
            cache.put(list(snapshots[k]))

    def invalidator():
        start.wait()
        for _ in range(200):
            cache.invalidate()

    def reader():
        start.wait()
        for _ in range(500):
            result = cache.get()
            if result is None:
                continue
            if tuple(result) not in snapshots:
                errors.append(result)
            seen.append(result)

    threads = [threading.Thread(target=writer, args=(k,)) for k in range(5)]
    threads.append(threading.Thread(target=invalidator))
    threads.extend(threading.Thread(target=reader) for _ in range(2))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    for result in seen:
        prefixes = {event.title.split('-')[0] for event in result}
        assert len(prefixes) == 1
