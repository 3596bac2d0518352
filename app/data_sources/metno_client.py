"""Helpers for fetching point forecasts from the met.no Locationforecast API."""
from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional

import requests

from app.data_sources.http import raise_for_upstream
from app.errors import UpstreamError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="metno_client")

METNO_FORECAST_URL = "https://api.met.no/weatherapi/locationforecast/2.0/compact"

DEFAULT_SYMBOL = "clearsky_day"


def _parse_time(value: str) -> dt.datetime:
    """met.no timestamps are UTC with a trailing Z."""
    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def _period(data: dict) -> dict:
    """Shortest available forecast period; later hours only carry 6/12-hour blocks."""
    for name in ("next_1_hours", "next_6_hours", "next_12_hours"):
        block = data.get(name)
        if isinstance(block, dict):
            return block
    return {}


def _entry(item: dict) -> Optional[dict]:
    data = item.get("data") or {}
    details = (data.get("instant") or {}).get("details") or {}
    temperature = details.get("air_temperature")
    if temperature is None:
        return None
    period = _period(data)
    return {
        "time": item["time"],
        "temperature": float(temperature),
        "symbol": (period.get("summary") or {}).get("symbol_code") or DEFAULT_SYMBOL,
        "wind_speed": details.get("wind_speed"),
        "wind_direction": details.get("wind_from_direction"),
        "precipitation": (period.get("details") or {}).get("precipitation_amount"),
    }


def normalize_forecast(payload: Any, *, now: dt.datetime, hours: int) -> List[dict]:
    """Keep entries from the start of the current hour to `now + hours`, in upstream order.

    Entries without an air temperature are dropped; optional fields are None
    and a missing symbol becomes DEFAULT_SYMBOL.
    """
    if not isinstance(payload, dict):
        raise UpstreamError("met.no returned a non-object payload", service="met.no")
    timeseries = (payload.get("properties") or {}).get("timeseries")
    if not isinstance(timeseries, list):
        raise UpstreamError("met.no payload has no properties.timeseries", service="met.no")

    start = now.replace(minute=0, second=0, microsecond=0)
    horizon = now + dt.timedelta(hours=hours)
    out: List[dict] = []
    for item in timeseries:
        try:
            when = _parse_time(item["time"])
        except (KeyError, TypeError, ValueError):
            continue
        if when < start or when > horizon:
            continue
        entry = _entry(item)
        if entry is not None:
            out.append(entry)
    return out


class MetNoClient:
    """Thin client for the compact Locationforecast product."""

    def __init__(self, session: requests.Session, *, timeout: float = 10.0) -> None:
        self.session = session
        self.timeout = timeout

    def get_forecast_payload(self, latitude: float, longitude: float) -> dict:
        """Fetch the raw Locationforecast document."""
        # met.no asks clients to send at most 4 decimals.
        params = {"lat": round(latitude, 4), "lon": round(longitude, 4)}
        resp = self.session.get(METNO_FORECAST_URL, params=params, timeout=self.timeout)
        raise_for_upstream(resp, "met.no")
        return resp.json()

    def get_forecast(self, latitude: float, longitude: float, *, hours: int = 48,
                     now: dt.datetime | None = None) -> List[dict]:
        """Return the normalized time series for the next `hours` hours."""
        payload = self.get_forecast_payload(latitude, longitude)
        now = now or dt.datetime.now(tz=dt.timezone.utc)
        entries = normalize_forecast(payload, now=now, hours=hours)
        logger.debug("met.no forecast", extra={"entries": len(entries)})
        return entries
