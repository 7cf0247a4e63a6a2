"""
In-memory TTL cache for the dashboard aggregation.

Keys combine the caller's key with a generation counter, so invalidate()
drops everything cached before a rate change without touching the clock.
The clock is injectable so expiry is deterministic in tests.
"""

import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLCache:
    """Thread-safe in-memory TTL cache."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl_seconds
        self.clock = clock
        self.generation = 0
        self._data: Dict[Tuple[Hashable, int], Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            full_key = (key, self.generation)
            entry = self._data.get(full_key)
            if entry and self.clock() < entry[1]:
                return entry[0]
            if entry:
                del self._data[full_key]
            return None

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._data[(key, self.generation)] = (value, self.clock() + self.ttl)

    def invalidate(self) -> None:
        with self._lock:
            self.generation += 1
            self._data.clear()

