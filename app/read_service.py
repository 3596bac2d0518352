"""Serve cached snapshots, refreshing synchronously when the aggregate view is cold."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from app.app_types import SourceName
from app.cache_store import SNAPSHOT_KEY, CacheStore
from app.coordinator import RefreshCoordinator, cache_key
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="read_service")

ALL = "all"
HISTORY = "history"
VALID_KINDS = (ALL, HISTORY, *(s.value for s in SourceName))


class UnknownDataKind(ValueError):
    """Requested data type is not one of VALID_KINDS."""


@dataclass
class CachedRead:
    """Result of a read: found data (cached or freshly refreshed) or the reasons it is missing."""
    kind: str
    found: bool
    cached: bool
    data: Any = None
    errors: dict[str, str] = field(default_factory=dict)


def get_cached(kind: str, store: CacheStore, coordinator: Optional[RefreshCoordinator] = None) -> CachedRead:
    """Return the cached value for `kind`.

    - ``all``: snapshot on hit; on miss run one synchronous refresh and return
      its snapshot with ``cached=False``. When every source fails the result
      is not found and carries the per-source errors.
    - a single source: cached entry or not found, never a refresh.
    - ``history``: stored temperature history (possibly empty).
    """
    kind = (kind or ALL).lower()
    if kind not in VALID_KINDS:
        raise UnknownDataKind(f"Unknown data type '{kind}'; expected one of {', '.join(VALID_KINDS)}")

    if kind == HISTORY:
        points = [p.to_dict() for p in store.get_history()]
        return CachedRead(kind=kind, found=True, cached=True, data=points)

    if kind != ALL:
        value = store.get(cache_key(SourceName(kind)))
        if value is None:
            logger.info("Cache miss for single source", extra={"source": kind})
            return CachedRead(kind=kind, found=False, cached=False)
        return CachedRead(kind=kind, found=True, cached=True, data=value)

    snapshot = store.get(SNAPSHOT_KEY)
    if snapshot is not None:
        return CachedRead(kind=kind, found=True, cached=True, data=snapshot)

    if coordinator is None:
        return CachedRead(kind=kind, found=False, cached=False)

    logger.info("Snapshot cache miss; refreshing synchronously")
    summary = coordinator.refresh()
    if summary.snapshot is None:
        logger.error("Cold cache and every source failed", extra={"errors": summary.errors()})
        return CachedRead(kind=kind, found=False, cached=False, errors=summary.errors())
    return CachedRead(kind=kind, found=True, cached=False, data=summary.snapshot)
