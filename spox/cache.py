"""
Bounded in-memory LRU cache.
"""

from collections import OrderedDict
from typing import Callable, Generic, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    """
    Least-recently-used cache with a fixed number of entries.

    Both reads and writes mark a key as most recently used. There is no TTL;
    entries only leave on capacity pressure. Not thread-safe: the monitor
    runs on a single thread.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"cache capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries: OrderedDict[K, V] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: K) -> Optional[V]:
        """Return the cached value, or None if not present."""
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: K, value: V) -> None:
        """Store a value, evicting the least recently used entry if full."""
        self._entries[key] = value
        self._entries.move_to_end(key)
        if len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def get_or_fetch(self, key: K, fetch: Callable[[], V]) -> V:
        """
        Return the value for `key`, calling `fetch` once on a miss.

        Exceptions raised by `fetch` propagate and nothing is stored.
        """
        if key in self._entries:
            self._entries.move_to_end(key)
            return self._entries[key]

        value = fetch()
        self.put(key, value)
        return value
