"""Redis-backed cache store with native TTL."""

import json
from typing import Any, List, Optional

from app.app_types import HistoryPoint
from app.cache_store.base import HISTORY_KEY, CacheStore, load_history, trim_history
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/redis_cache_store")


class RedisCacheStore(CacheStore):
    """Redis-backed cache. Values are JSON strings written with SETEX."""

    def __init__(self, client, prefix: str = "wk:weather:", history_ttl_seconds: int = 86400) -> None:
        """Initialize with a Redis client, a key prefix and the history TTL."""
        logger.debug("Initializing RedisCacheStore")
        self.client = client
        self.prefix = prefix
        self.history_ttl = history_ttl_seconds

    def _key(self, key: str) -> str:
        """Return the namespaced Redis key."""
        return f"{self.prefix}{key}"

    @staticmethod
    def _safe_load(raw) -> Optional[Any]:
        """Decode a stored JSON payload, treating corrupt data as a miss."""
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            return json.loads(raw)
        except (UnicodeDecodeError, ValueError) as exc:
            logger.error("Failed to decode cached payload: %s", exc)
            return None

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(self._key(key))
        except Exception as exc:
            logger.error("Failed to read %s from Redis: %s", key, exc)
            return None
        if raw is None:
            return None
        return self._safe_load(raw)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            logger.error("Refusing to cache non-JSON value for %s: %s", key, exc)
            return
        try:
            self.client.setex(self._key(key), max(1, int(ttl_seconds)), payload)
        except Exception as exc:
            logger.error("Failed to write %s to Redis: %s", key, exc)

    def delete(self, key: str) -> None:
        try:
            self.client.delete(self._key(key))
        except Exception as exc:
            logger.error("Failed to delete %s from Redis: %s", key, exc)

    def append_history(self, point: HistoryPoint, max_length: int) -> List[HistoryPoint]:
        # Read-modify-write: two overlapping refreshes can drop one point, never corrupt the list.
        key = self._key(HISTORY_KEY)
        try:
            raw = self.client.get(key)
        except Exception as exc:
            logger.error("Failed to read history from Redis: %s", exc)
            return []
        stored = self._safe_load(raw) if raw is not None else None
        history = trim_history(load_history(stored) + [point], max_length)
        try:
            self.client.setex(key, self.history_ttl, json.dumps([p.to_dict() for p in history]))
        except Exception as exc:
            logger.error("Failed to write history to Redis: %s", exc)
            return []
        logger.debug("History updated", extra={"entries": len(history)})
        return history

    def get_history(self) -> List[HistoryPoint]:
        return load_history(self.get(HISTORY_KEY))

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except Exception as exc:
            logger.warning("Redis ping failed: %s", exc)
            return False

    def clear(self) -> None:
        """Best-effort clear for all keys under the configured prefix."""
        try:
            for key in self.client.scan_iter(f"{self.prefix}*"):
                self.client.delete(key)
        except Exception as exc:
            logger.error("Failed to clear cache from Redis: %s", exc)
