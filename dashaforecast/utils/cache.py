from __future__ import annotations
from collections import OrderedDict
import hashlib, json, threading, time
from typing import Any, Callable, Iterable, Optional, Tuple

__all__ = ["TTLCache", "make_cache_key", "series_digest"]


class TTLCache:
    """
    LRU cache with per-entry expiry. Owned by the hosting app and passed in
    explicitly; ttl_seconds <= 0 disables storage.
    """
    def __init__(self, capacity: int = 1024, ttl_seconds: float = 3600.0,
                 clock: Callable[[], float] = time.monotonic):
        self.capacity = max(1, int(capacity))
        self.ttl = float(ttl_seconds)
        self.clock = clock
        self.store: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self.lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl > 0

    def get(self, key: str) -> Optional[Any]:
        with self.lock:
            item = self.store.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at <= self.clock():
                del self.store[key]
                return None
            self.store.move_to_end(key)
            return value

    def set(self, key: str, value: Any) -> None:
        if not self.enabled:
            return
        with self.lock:
            self.store[key] = (self.clock() + self.ttl, value)
            self.store.move_to_end(key)
            while len(self.store) > self.capacity:
                self.store.popitem(last=False)

    def clear(self) -> None:
        with self.lock:
            self.store.clear()

    def __len__(self) -> int:
        with self.lock:
            return len(self.store)


def make_cache_key(namespace: str, parts: Any) -> str:
    """Stable key: same parts -> same string regardless of dict ordering."""
    body = json.dumps(parts, sort_keys=True, separators=(',', ':'), default=str)
    return f"{namespace}:{body}"


def series_digest(points: Iterable[Any]) -> str:
    """SHA-256 over the canonical form of (date, signal, facts) triples."""
    h = hashlib.sha256()
    for p in points:
        row = [str(p.date), repr(float(p.signal)), list(p.facts)]
        h.update(json.dumps(row, separators=(',', ':')).encode("utf-8"))
        h.update(b"\n")
    return h.hexdigest()
