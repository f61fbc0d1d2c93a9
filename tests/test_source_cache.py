"""Tests for the source data cache."""

import threading
import time

from models import SourceData
from source_cache import SourceDataCache


def counting_loader():
    calls = []

    def loader(partner_id):
        calls.append(partner_id)
        return SourceData()

    return loader, calls


def test_loads_once_per_partner():
    loader, calls = counting_loader()
    cache = SourceDataCache(loader)

    first = cache.get("p1")
    second = cache.get("p1")
    cache.get("p2")

    assert first is second
    assert calls == ["p1", "p2"]
    assert len(cache) == 2
    assert "p1" in cache


def test_invalidate_reloads_one_partner():
    loader, calls = counting_loader()
    cache = SourceDataCache(loader)
    cache.get("p1")
    cache.get("p2")

    cache.invalidate("p1")

    assert "p1" not in cache
    assert "p2" in cache
    cache.get("p1")
    assert calls == ["p1", "p2", "p1"]


def test_invalidate_unknown_partner_is_noop():
    loader, _ = counting_loader()
    cache = SourceDataCache(loader)
    cache.invalidate("missing")
    assert len(cache) == 0


def test_clear():
    loader, calls = counting_loader()
    cache = SourceDataCache(loader)
    cache.get("p1")
    cache.get("p2")

    cache.clear()

    assert len(cache) == 0
    cache.get("p1")
    assert calls == ["p1", "p2", "p1"]


def test_concurrent_gets_load_once():
    calls = []

    def slow_loader(partner_id):
        calls.append(partner_id)
        time.sleep(0.05)
        return SourceData()

    cache = SourceDataCache(slow_loader)
    barrier = threading.Barrier(8)
    results = []

    def worker():
        barrier.wait()
        results.append(cache.get("p1"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert calls == ["p1"]
    assert len(results) == 8
    assert all(r is results[0] for r in results)
