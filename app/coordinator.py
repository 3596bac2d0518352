"""Fan out to every upstream adapter and write what succeeded to the cache."""
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional, Sequence

from app.app_types import HistoryPoint, RefreshSummary, SourceName, SourceResult, utc_now
from app.cache_store import SNAPSHOT_KEY, CacheStore
from app.data_sources.base import SourceAdapter, describe_error
from app.errors import UpstreamTimeoutError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="coordinator")


def cache_key(source: SourceName) -> str:
    """Cache key holding the latest normalized data for a source."""
    return source.value


def _station_temperature(resort: Optional[dict], station: str) -> Optional[float]:
    if not resort:
        return None
    return (resort.get(station) or {}).get("temperature")


def build_history_point(results: Sequence[SourceResult], timestamp: str) -> Optional[HistoryPoint]:
    """Build a point from whichever temperature-bearing sources succeeded.

    Returns None when neither the sensor nor the resort succeeded, or when
    the ones that did carried no temperature.
    """
    by_name = {r.source_name: r for r in results if r.success}
    sensor = by_name.get(SourceName.SENSOR)
    resort = by_name.get(SourceName.RESORT)
    if sensor is None and resort is None:
        return None
    resort_data = resort.data if resort else None
    point = HistoryPoint(
        timestamp=timestamp,
        sensor_temperature=(sensor.data or {}).get("temperature") if sensor else None,
        resort_top_temperature=_station_temperature(resort_data, "top"),
        resort_bottom_temperature=_station_temperature(resort_data, "bottom"),
    )
    return point if point.has_temperature() else None


class RefreshCoordinator:
    """Runs all adapters concurrently and is the only writer to the cache store."""

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        store: CacheStore,
        *,
        ttl_seconds: int = 900,
        history_max_length: int = 48,
        deadline_seconds: float = 60.0,
        clock: Callable = utc_now,
    ) -> None:
        self.adapters = list(adapters)
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.history_max_length = history_max_length
        self.deadline_seconds = deadline_seconds
        self._clock = clock

    @classmethod
    def from_settings(cls, adapters: Sequence[SourceAdapter], store: CacheStore, settings) -> "RefreshCoordinator":
        return cls(
            adapters,
            store,
            ttl_seconds=settings.cache_ttl_seconds,
            history_max_length=settings.history_max_length,
            deadline_seconds=settings.adapter_deadline_seconds,
        )

    def _run_adapters(self) -> List[SourceResult]:
        """Invoke every adapter in parallel and wait for all of them to settle."""
        executor = ThreadPoolExecutor(max_workers=max(1, len(self.adapters)), thread_name_prefix="refresh")
        try:
            futures = [executor.submit(adapter.fetch) for adapter in self.adapters]
            wait(futures, timeout=self.deadline_seconds)
            results: List[SourceResult] = []
            for adapter, future in zip(self.adapters, futures):
                if not future.done():
                    future.cancel()
                    late = UpstreamTimeoutError(
                        f"no response within {self.deadline_seconds:g}s", service=adapter.name.value
                    )
                    results.append(SourceResult.failed(
                        adapter.name,
                        describe_error(late),
                        duration_ms=int(self.deadline_seconds * 1000),
                    ))
                    continue
                try:
                    results.append(future.result())
                except Exception as exc:
                    # Adapters should not raise.
                    logger.exception("Adapter raised past its boundary", extra={"source": adapter.name.value})
                    results.append(SourceResult.failed(adapter.name, f"{exc.__class__.__name__}: {exc}"))
            return results
        finally:
            # Do not block on a straggler that already missed the deadline.
            executor.shutdown(wait=False, cancel_futures=True)

    def _build_snapshot(self, fresh: Dict[SourceName, dict], history: List[HistoryPoint], timestamp: str) -> dict:
        """Fresh entries where available, else whatever the cache still holds for the source."""
        snapshot: dict = {}
        for adapter in self.adapters:
            if adapter.name in fresh:
                snapshot[adapter.name.value] = fresh[adapter.name]
            else:
                snapshot[adapter.name.value] = self.store.get(cache_key(adapter.name))
        snapshot["history"] = [point.to_dict() for point in history]
        snapshot["last_update"] = timestamp
        return snapshot

    def refresh(self) -> RefreshSummary:
        """Refresh every source once. Never raises."""
        started = time.monotonic()
        timestamp = self._clock()
        logger.info("Starting refresh", extra={"sources": [a.name.value for a in self.adapters]})

        results = self._run_adapters()

        fresh: Dict[SourceName, dict] = {}
        for result in results:
            if not result.success:
                # Previous entry for this source stays as is.
                continue
            entry = dict(result.data) if isinstance(result.data, dict) else {"value": result.data}
            entry["fetched_at"] = result.timestamp.isoformat()
            self.store.set(cache_key(result.source_name), entry, self.ttl_seconds)
            fresh[result.source_name] = entry
            logger.debug("Cached source", extra={"source": result.source_name.value})

        point = build_history_point(results, timestamp.isoformat())
        if point is not None:
            history = self.store.append_history(point, self.history_max_length)
        else:
            history = self.store.get_history()

        snapshot = None
        if fresh:
            snapshot = self._build_snapshot(fresh, history, timestamp.isoformat())
            self.store.set(SNAPSHOT_KEY, snapshot, self.ttl_seconds)

        duration_ms = int((time.monotonic() - started) * 1000)
        summary = RefreshSummary(timestamp=timestamp, duration_ms=duration_ms, results=results, snapshot=snapshot)
        logger.info(f"Refresh complete: {summary.succeeded}/{len(results)} successful in {duration_ms}ms",
                    extra={"errors": summary.errors()})
        return summary
