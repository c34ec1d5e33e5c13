"""In-memory price cache with per-entry expiry."""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

DEFAULT_TTL_SECONDS = 300


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class PriceCache:
    """
    Key/value store shared by the market data providers.

    Entries expire lazily: a read past ``expires_at`` removes the entry and
    behaves exactly like a miss. There is no background sweep and no size
    bound. One instance is built at startup and handed to every provider.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._store: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None

            if self._clock() > entry.expires_at:
                del self._store[key]
                return None

            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float = DEFAULT_TTL_SECONDS) -> None:
        """Store a value, replacing any existing entry and resetting its expiry."""
        with self._lock:
            self._store[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    @property
    def size(self) -> int:
        """Number of stored entries, including expired ones not yet read."""
        with self._lock:
            return len(self._store)

    def __len__(self) -> int:
        return self.size
