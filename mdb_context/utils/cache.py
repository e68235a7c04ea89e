"""
Instance-scoped caches shared across threads.

Resolution work (policy lookup, collection provisioning) happens outside the
cache. Only the final write is guarded, and it is an insert-if-absent: when
two callers race, the first stored value wins and both get it back.
"""

import threading
from typing import Generic, Hashable, Iterator, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class InsertIfAbsentCache(Generic[K, V]):
    """
    Mapping with lock-free reads and an atomic insert-if-absent write.

    Example:
        handle = cache.get(name)
        if handle is None:
            handle = cache.insert_if_absent(name, build_handle())
    """

    __slots__ = ("_items", "_lock")

    def __init__(self) -> None:
        self._items: dict[K, V] = {}
        self._lock = threading.Lock()

    def get(self, key: K) -> V | None:
        return self._items.get(key)

    def insert_if_absent(self, key: K, value: V) -> V:
        """
        Store ``value`` unless ``key`` is already present.

        Returns:
            The cached value for ``key``: ``value`` if it was stored, otherwise
            the value another caller stored first.
        """
        with self._lock:
            return self._items.setdefault(key, value)

    def values(self) -> list[V]:
        with self._lock:
            return list(self._items.values())

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[K]:
        with self._lock:
            return iter(list(self._items))
