"""Upstream adapters and clients for the dashboard's data sources."""

from .adapters import ForecastAdapter, ResortAdapter, SensorAdapter
from .base import BaseAdapter, SourceAdapter
from .factory import build_adapters
from .fnugg_client import FnuggClient, normalize_resort
from .homey_client import HomeyClient, HomeyTokenProvider, normalize_device_reading
from .metno_client import MetNoClient, normalize_forecast

__all__ = [
    "build_adapters",
    "BaseAdapter",
    "SourceAdapter",
    "SensorAdapter",
    "ResortAdapter",
    "ForecastAdapter",
    "HomeyClient",
    "HomeyTokenProvider",
    "FnuggClient",
    "MetNoClient",
    "normalize_device_reading",
    "normalize_resort",
    "normalize_forecast",
]
