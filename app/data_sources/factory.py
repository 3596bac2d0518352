"""Factory helpers for wiring the upstream adapters from settings."""

from __future__ import annotations

from typing import List

from app import config
from app.data_sources.adapters import ForecastAdapter, ResortAdapter, SensorAdapter
from app.data_sources.base import SourceAdapter
from app.data_sources.fnugg_client import FnuggClient
from app.data_sources.homey_client import HomeyClient, HomeyTokenProvider
from app.data_sources.http import create_session
from app.data_sources.metno_client import MetNoClient
from app.retry import RetryPolicy
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


def build_adapters(settings: config.Settings | None = None) -> List[SourceAdapter]:
    """Instantiate the sensor, resort and forecast adapters, in that order.

    Missing Homey credentials do not fail here; the sensor adapter reports
    them as a configuration error on each fetch.
    """
    settings = settings or config.settings
    retry = RetryPolicy.from_settings(settings)

    sensor_session = create_session(settings.user_agent, timeout=settings.sensor_timeout_seconds)
    tokens = HomeyTokenProvider(
        settings.homey_client_id,
        settings.homey_client_secret,
        settings.homey_refresh_token,
        sensor_session,
        timeout=settings.sensor_timeout_seconds,
    )
    sensor = SensorAdapter(
        HomeyClient(tokens, sensor_session, timeout=settings.sensor_timeout_seconds),
        settings.homey_device_id_temp,
        humidity_device_id=settings.homey_device_id_humidity,
        retry=retry,
    )

    resort_session = create_session(settings.user_agent, timeout=settings.resort_timeout_seconds)
    resort = ResortAdapter(
        FnuggClient(settings.resort_id, resort_session, timeout=settings.resort_timeout_seconds),
        retry=retry,
    )

    forecast_session = create_session(settings.user_agent, timeout=settings.forecast_timeout_seconds)
    forecast = ForecastAdapter(
        MetNoClient(forecast_session, timeout=settings.forecast_timeout_seconds),
        settings.forecast_latitude,
        settings.forecast_longitude,
        hours=settings.forecast_hours,
        retry=retry,
    )

    if not settings.homey_refresh_token:
        logger.warning("Homey credentials not configured; sensor source will report failures")
    logger.info(
        "Configured data sources",
        extra={"resort_id": settings.resort_id, "forecast_hours": settings.forecast_hours},
    )
    return [sensor, resort, forecast]
