"""
Unit tests for InsertIfAbsentCache.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

from mdb_context.utils import InsertIfAbsentCache


class TestInsertIfAbsentCache:
    def test_get_missing_returns_none(self):
        cache = InsertIfAbsentCache()
        assert cache.get("orders") is None
        assert "orders" not in cache

    def test_first_insert_wins(self):
        cache = InsertIfAbsentCache()
        first, second = object(), object()
        assert cache.insert_if_absent("orders", first) is first
        assert cache.insert_if_absent("orders", second) is first
        assert cache.get("orders") is first
        assert len(cache) == 1

    def test_iteration_and_values(self):
        cache = InsertIfAbsentCache()
        cache.insert_if_absent("a", 1)
        cache.insert_if_absent("b", 2)
        assert sorted(cache) == ["a", "b"]
        assert sorted(cache.values()) == [1, 2]

    def test_clear(self):
        cache = InsertIfAbsentCache()
        cache.insert_if_absent("a", 1)
        cache.clear()
        assert len(cache) == 0

    def test_concurrent_inserts_converge_on_one_value(self):
        cache = InsertIfAbsentCache()
        barrier = threading.Barrier(8)

        def insert(worker: int):
            barrier.wait()
            return cache.insert_if_absent("orders", object())

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(insert, range(8)))

        assert all(result is results[0] for result in results)
        assert cache.get("orders") is results[0]
