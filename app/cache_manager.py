"""Builds the configured cache store and hands it to request handlers."""
import redis

from app.cache_store import CacheStore, InMemoryCacheStore, RedisCacheStore
from app.config import Settings, settings
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="cache_manager")


def build_store(cfg: Settings | None = None) -> CacheStore:
    """Initialize the backing cache store based on configuration."""
    cfg = cfg or settings
    logger.debug(f"Initializing cache store: redis_url='{mask_url(cfg.redis_url) or 'None'}'")
    if cfg.redis_url:
        try:
            client = redis.Redis.from_url(cfg.redis_url, socket_connect_timeout=10, socket_timeout=10)
            client.ping()
            logger.info("Using RedisCacheStore", extra={"redis_url": mask_url(cfg.redis_url)})
            return RedisCacheStore(client, prefix=cfg.cache_key_prefix, history_ttl_seconds=cfg.history_ttl_seconds)
        except redis.RedisError as exc:
            logger.warning("Falling back to InMemoryCacheStore (Redis unavailable)", extra={"error": str(exc)})
    return InMemoryCacheStore(history_ttl_seconds=cfg.history_ttl_seconds)


_store: CacheStore | None = None


def get_store() -> CacheStore:
    """Return the process cache store, building it on first use."""
    global _store
    if _store is None:
        _store = build_store()
    return _store


def use_in_memory_store_for_tests(history_ttl_seconds: int = 86400) -> InMemoryCacheStore:
    """Override the store for tests to ensure isolation and determinism."""
    global _store
    store = InMemoryCacheStore(history_ttl_seconds=history_ttl_seconds)
    _store = store
    return store
