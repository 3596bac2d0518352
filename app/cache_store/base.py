"""Shared protocol for cache store backends."""

from typing import Any, List, Optional, Protocol

from app.app_types import HistoryPoint
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_store/base")

# Not "history": older deployments write {ts, h, t, b} entries under that key.
HISTORY_KEY = "temperature_history"
SNAPSHOT_KEY = "snapshot"


def load_history(items: Any) -> List[HistoryPoint]:
    """Decode a stored history list, skipping entries that are not HistoryPoint dicts."""
    if not isinstance(items, list):
        if items is not None:
            logger.warning("Ignoring stored history that is not a list", extra={"type": type(items).__name__})
        return []
    points = [
        HistoryPoint.from_dict(item)
        for item in items
        if isinstance(item, dict) and isinstance(item.get("timestamp"), str)
    ]
    if len(points) != len(items):
        logger.warning("Skipped unreadable history entries", extra={"skipped": len(items) - len(points)})
    return points


def trim_history(points: List[HistoryPoint], max_length: int) -> List[HistoryPoint]:
    """Keep the newest `max_length` points; at least one is always kept."""
    return points[-max(1, max_length):]


class CacheStore(Protocol):
    """Key-value store with per-entry expiry plus a bounded history list.

    Implementations never raise on connection problems: reads degrade to a
    miss and writes are logged and dropped.
    """

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None on miss, expiry or store failure."""

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Overwrite `key` with a JSON-serializable value expiring after `ttl_seconds`."""

    def delete(self, key: str) -> None:
        """Remove `key` without raising if it is absent."""

    def append_history(self, point: HistoryPoint, max_length: int) -> List[HistoryPoint]:
        """Append a point, keep only the newest `max_length`, and return the stored list."""

    def get_history(self) -> List[HistoryPoint]:
        """Return the stored history, oldest first."""

    def ping(self) -> bool:
        """Return True if the backing store is reachable."""

    def clear(self) -> None:
        """Remove every entry owned by this store."""
