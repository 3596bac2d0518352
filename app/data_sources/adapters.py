"""Concrete adapters for the sensor hub, resort feed and forecast upstreams."""
from __future__ import annotations

import datetime as dt
from typing import Callable, Optional

from app.app_types import SourceName
from app.data_sources.base import BaseAdapter
from app.data_sources.fnugg_client import FnuggClient
from app.data_sources.homey_client import HomeyClient
from app.data_sources.metno_client import MetNoClient
from app.errors import ConfigurationError
from app.retry import RetryPolicy


def _round(value: Optional[float], digits: int) -> Optional[float]:
    return None if value is None else round(float(value), digits)


class SensorAdapter(BaseAdapter):
    """Outdoor temperature/humidity from a Homey-connected sensor."""

    name = SourceName.SENSOR

    def __init__(self, client: HomeyClient, device_id: str | None, *,
                 humidity_device_id: str | None = None, retry: RetryPolicy | None = None) -> None:
        self.client = client
        self.device_id = device_id
        self.humidity_device_id = humidity_device_id
        self.retry = retry or RetryPolicy()

    def _fetch(self) -> dict:
        if not self.device_id:
            raise ConfigurationError("WEATHER_HOMEY_DEVICE_ID_TEMP is not set")
        reading = self.retry.call(self.client.get_device_reading, self.device_id, self.humidity_device_id)
        return {
            "temperature": _round(reading.get("temperature"), 1),
            "humidity": _round(reading.get("humidity"), 0),
            "device_id": self.device_id,
            "source": "homey",
        }


class ResortAdapter(BaseAdapter):
    """Top/bottom station conditions and lift status for the ski resort."""

    name = SourceName.RESORT

    def __init__(self, client: FnuggClient, *, retry: RetryPolicy | None = None) -> None:
        self.client = client
        self.retry = retry or RetryPolicy()

    def _fetch(self) -> dict:
        conditions = self.retry.call(self.client.get_conditions)
        return {
            "name": conditions.get("name"),
            "top": conditions["top"],
            "bottom": conditions["bottom"],
            "lifts": conditions["lifts"],
            "source": "fnugg",
        }


class ForecastAdapter(BaseAdapter):
    """Hourly point forecast for the resort area."""

    name = SourceName.FORECAST

    def __init__(self, client: MetNoClient, latitude: float, longitude: float, *, hours: int = 48,
                 retry: RetryPolicy | None = None,
                 clock: Callable[[], dt.datetime] = lambda: dt.datetime.now(tz=dt.timezone.utc)) -> None:
        self.client = client
        self.latitude = latitude
        self.longitude = longitude
        self.hours = hours
        self.retry = retry or RetryPolicy()
        self._clock = clock

    def _fetch(self) -> dict:
        entries = self.retry.call(
            self.client.get_forecast, self.latitude, self.longitude, hours=self.hours, now=self._clock()
        )
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "entries": entries,
            "source": "met.no",
        }
