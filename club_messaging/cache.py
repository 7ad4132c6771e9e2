from collections import OrderedDict
from typing import Generic, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    """Bounded mapping that evicts the least recently used entry."""

    def __init__(self, *, max_size: int):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.cache: "OrderedDict[K, V]" = OrderedDict()
        self.max_size = max_size

    def get(self, key: K) -> Optional[V]:
        if key not in self.cache:
            return None
        self.cache.move_to_end(key)
        return self.cache[key]

    def put(self, key: K, value: V) -> None:
        self.cache[key] = value
        self.cache.move_to_end(key)
        if len(self.cache) > self.max_size:
            self.cache.popitem(last=False)  # Oldest entry

    def pop(self, key: K) -> Optional[V]:
        return self.cache.pop(key, None)

    def clear(self) -> None:
        self.cache.clear()

    def __contains__(self, key: object) -> bool:
        return key in self.cache

    def __len__(self) -> int:
        return len(self.cache)
