"""In-memory cache with a per-entry time to live."""

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from ollama_code.observability.wrappers import CacheWrapper


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class CacheManager:
    """Thread-safe key/value store whose entries expire after `ttl` seconds.

    Expired entries read as misses and are dropped on the next `cleanup`
    or `set`; there is no background sweeper. When `wrapper` is set,
    every lookup is counted as a hit or miss.
    """

    def __init__(
        self,
        ttl: float = 900.0,
        clock: Callable[[], float] = time.monotonic,
        wrapper: "Optional[CacheWrapper]" = None,
    ):
        self.ttl = ttl
        self.wrapper = wrapper
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> tuple[Any, bool]:
        """Return `(value, True)` for a live entry, `(None, False)` otherwise."""
        if self.wrapper is None:
            return self._lookup(key)
        return self.wrapper.wrap_cache_get(key, lambda: self._lookup(key))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._purge()
            self._entries[key] = CacheEntry(value, self._clock() + self.ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        with self._lock:
            return self._purge()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _lookup(self, key: str) -> tuple[Any, bool]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._clock() >= entry.expires_at:
                return None, False
            return entry.value, True

    def _purge(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)
