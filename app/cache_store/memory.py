"""In-memory cache store with TTL, used when no Redis URL is configured and in tests."""

import json
import threading
import time
from typing import Any, Callable, List, Optional

from app.app_types import HistoryPoint
from app.cache_store.base import HISTORY_KEY, CacheStore, load_history, trim_history

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/in_memory_cache_store")


class InMemoryCacheStore(CacheStore):
    """Thread-safe, TTL-aware in-memory store.

    Values are stored as JSON text so that reads return fresh copies with the
    same shape a Redis round-trip would produce. Expiry is checked on read.
    """

    def __init__(self, history_ttl_seconds: int = 86400, clock: Callable[[], float] = time.monotonic) -> None:
        logger.debug("Initializing InMemoryCacheStore")
        self.history_ttl = history_ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def _read(self, key: str) -> Optional[Any]:
        """Return the decoded value for `key`; caller holds the lock."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return json.loads(raw)

    def _write(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store `value` under `key`; caller holds the lock."""
        self._entries[key] = (json.dumps(value), self._clock() + ttl_seconds)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._read(key)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            logger.error("Refusing to cache non-JSON value for %s: %s", key, exc)
            return
        with self._lock:
            self._entries[key] = (payload, self._clock() + ttl_seconds)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def append_history(self, point: HistoryPoint, max_length: int) -> List[HistoryPoint]:
        with self._lock:
            history = trim_history(load_history(self._read(HISTORY_KEY)) + [point], max_length)
            self._write(HISTORY_KEY, [p.to_dict() for p in history], self.history_ttl)
        return history

    def get_history(self) -> List[HistoryPoint]:
        with self._lock:
            return load_history(self._read(HISTORY_KEY))

    def ping(self) -> bool:
        return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
