"""Thread-safe in-memory cache of proxied responses with LRU eviction."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

__all__ = [
    "MAX_BYTES",
    "MAX_CLIENTS",
    "MAX_SIZE",
    "MAX_ELEMENT_SIZE",
    "ELEMENT_OVERHEAD",
    "CacheElement",
    "Cache",
]

MAX_BYTES = 4096
MAX_CLIENTS = 400
MAX_SIZE = 200 * (1 << 20)
MAX_ELEMENT_SIZE = 10 * (1 << 20)
# Fixed bookkeeping cost charged to every entry on top of its data and URL.
ELEMENT_OVERHEAD = 40


@dataclass(eq=False)
class CacheElement:
    """One cached response, keyed by its URL."""

    data: bytes
    url: str
    lru_time: float

    @property
    def size(self) -> int:
        """Bytes this element counts against the cache's capacity."""
        return len(self.data) + len(self.url.encode("utf-8")) + ELEMENT_OVERHEAD


class Cache:
    """A bounded cache that evicts the least recently used element first."""

    def __init__(
        self,
        max_size: int = MAX_SIZE,
        max_element_size: int = MAX_ELEMENT_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_size = max_size
        self.max_element_size = max_element_size
        self.size = 0
        self._clock = clock
        self._elements: list[CacheElement] = []  # newest first
        self._lock = threading.Lock()

    def find(self, url: str) -> CacheElement | None:
        """Return the element for ``url`` and mark it as just used, or None."""
        with self._lock:
            element = next((e for e in self._elements if e.url == url), None)
            if element is not None:
                element.lru_time = self._clock()
            return element

    def add(self, data: bytes, url: str) -> bool:
        """Store ``data`` under ``url``; False if it is too large to cache."""
        element = CacheElement(bytes(data), url, self._clock())
        if element.size > self.max_element_size:
            return False
        with self._lock:
            while self.size + element.size > self.max_size and self._elements:
                self._evict()
            if self.size + element.size > self.max_size:
                return False
            self._elements.insert(0, element)
            self.size += element.size
            return True

    def remove_oldest(self) -> CacheElement | None:
        """Evict and return the least recently used element, if any."""
        with self._lock:
            return self._evict()

    def _evict(self) -> CacheElement | None:
        if not self._elements:
            return None
        oldest = min(self._elements, key=lambda e: e.lru_time)
        self._elements.remove(oldest)
        self.size -= oldest.size
        return oldest

    def __len__(self) -> int:
        with self._lock:
            return len(self._elements)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return any(e.url == url for e in self._elements)