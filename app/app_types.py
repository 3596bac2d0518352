"""Shared dataclasses and lightweight types used across modules."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(tz=timezone.utc)


class SourceName(str, Enum):
    """Upstream data sources feeding the dashboard."""
    SENSOR = "sensor"
    RESORT = "resort"
    FORECAST = "forecast"


@dataclass(frozen=True)
class SourceResult:
    """Outcome of one adapter invocation; never persisted as-is."""
    source_name: SourceName
    success: bool
    data: Any = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)
    duration_ms: int = 0

    @classmethod
    def ok(cls, source_name: SourceName, data: Any, *, duration_ms: int = 0) -> "SourceResult":
        return cls(source_name=source_name, success=True, data=data, duration_ms=duration_ms)

    @classmethod
    def failed(cls, source_name: SourceName, error: str, *, duration_ms: int = 0) -> "SourceResult":
        return cls(source_name=source_name, success=False, error=error, duration_ms=duration_ms)

    def to_dict(self, *, include_data: bool = True) -> dict:
        out = {
            "source_name": self.source_name.value,
            "success": self.success,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
            "duration_ms": self.duration_ms,
        }
        if include_data:
            out["data"] = self.data
        return out


@dataclass(frozen=True)
class HistoryPoint:
    """One temperature sample for the trend chart. Partial points are valid."""
    timestamp: str  # ISO-8601, UTC
    sensor_temperature: Optional[float] = None
    resort_top_temperature: Optional[float] = None
    resort_bottom_temperature: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryPoint":
        return cls(
            timestamp=data["timestamp"],
            sensor_temperature=data.get("sensor_temperature"),
            resort_top_temperature=data.get("resort_top_temperature"),
            resort_bottom_temperature=data.get("resort_bottom_temperature"),
        )

    def has_temperature(self) -> bool:
        return any(
            t is not None
            for t in (self.sensor_temperature, self.resort_top_temperature, self.resort_bottom_temperature)
        )


@dataclass
class RefreshSummary:
    """Per-source outcome of a refresh, returned to the caller and not persisted."""
    timestamp: datetime
    duration_ms: int
    results: List[SourceResult]
    snapshot: Optional[dict] = None

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def all_failed(self) -> bool:
        return self.succeeded == 0

    def errors(self) -> dict[str, str]:
        """Map of source name to error message for failed sources."""
        return {r.source_name.value: r.error or "unknown error" for r in self.results if not r.success}

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "duration_ms": self.duration_ms,
            "succeeded": self.succeeded,
            "total": len(self.results),
            "results": [r.to_dict(include_data=False) for r in self.results],
        }
