"""Cache storage backends."""

from .base import CacheStore, HISTORY_KEY, SNAPSHOT_KEY
from .memory import InMemoryCacheStore
from .redis import RedisCacheStore

__all__ = [
    "CacheStore",
    "HISTORY_KEY",
    "SNAPSHOT_KEY",
    "InMemoryCacheStore",
    "RedisCacheStore",
]
