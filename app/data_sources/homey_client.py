"""Homey cloud API client: OAuth token refresh and device readings."""
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional

import requests

from app.data_sources.http import raise_for_upstream
from app.errors import ConfigurationError, UpstreamAuthError, UpstreamError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="homey_client")

HOMEY_TOKEN_URL = "https://api.athom.com/oauth2/token"
HOMEY_LIST_URL = "https://api.athom.com/homey"
HOMEY_DELEGATION_URL = "https://api.athom.com/delegation/token"
HOMEY_DEVICE_URL = "https://{homey_id}.connect.athom.com/api/device/{device_id}"

# Refresh the access token once fewer than this many seconds remain.
TOKEN_REFRESH_MARGIN_SECONDS = 300

# Capability names in the order they are tried.
TEMPERATURE_CAPABILITIES = ("measure_temperature", "temperature")
HUMIDITY_CAPABILITIES = ("measure_humidity", "humidity")


class HomeyTokenProvider:
    """Caches an OAuth access token and refreshes it from a refresh token.

    Safe to call before every request: a cached token is returned until it
    is within TOKEN_REFRESH_MARGIN_SECONDS of expiry or has been invalidated.
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        refresh_token: str | None,
        session: requests.Session,
        *,
        timeout: float = 15.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.session = session
        self.timeout = timeout
        self._clock = clock
        self._access_token: Optional[str] = None
        self._expires_at: float = 0.0
        self._lock = threading.Lock()

    def _require_config(self) -> None:
        missing = [
            name for name, value in (
                ("WEATHER_HOMEY_CLIENT_ID", self.client_id),
                ("WEATHER_HOMEY_CLIENT_SECRET", self.client_secret),
                ("WEATHER_HOMEY_REFRESH_TOKEN", self.refresh_token),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(f"Homey is not configured; missing {', '.join(missing)}")

    def invalidate(self) -> None:
        """Drop the cached token so the next call re-acquires one."""
        with self._lock:
            self._access_token = None
            self._expires_at = 0.0

    def get_valid_credential(self) -> str:
        """Return a usable access token, refreshing it when close to expiry."""
        self._require_config()
        with self._lock:
            if self._access_token and self._expires_at - self._clock() > TOKEN_REFRESH_MARGIN_SECONDS:
                return self._access_token
            logger.info("Refreshing Homey access token")
            resp = self.session.post(
                HOMEY_TOKEN_URL,
                data={"grant_type": "refresh_token", "refresh_token": self.refresh_token},
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout,
            )
            raise_for_upstream(resp, "homey oauth")
            payload = resp.json()
            token = payload.get("access_token")
            if not token:
                raise UpstreamAuthError("Homey token response had no access_token", service="homey oauth")
            self._access_token = token
            self._expires_at = self._clock() + float(payload.get("expires_in") or 3600)
            # Athom may rotate refresh tokens; keep the newest one for this process.
            if payload.get("refresh_token"):
                self.refresh_token = payload["refresh_token"]
            logger.info("Homey access token refreshed", extra={"expires_in": payload.get("expires_in")})
            return token


def _capability_value(capabilities: dict, names: tuple[str, ...]) -> Optional[float]:
    """Return the first present capability value as a float."""
    for name in names:
        cap = capabilities.get(name)
        if isinstance(cap, dict) and cap.get("value") is not None:
            try:
                return float(cap["value"])
            except (TypeError, ValueError):
                logger.warning("Non-numeric capability value", extra={"capability": name, "value": cap["value"]})
                return None
    return None


def normalize_device_reading(device: dict) -> dict:
    """Extract temperature/humidity from a Homey device payload.

    Capabilities are read from `capabilitiesObj` first, then `capabilities`
    when that is a dict. Missing readings are None, never omitted.
    """
    caps = device.get("capabilitiesObj")
    if not isinstance(caps, dict):
        caps = device.get("capabilities")
    if not isinstance(caps, dict):
        caps = {}
    return {
        "temperature": _capability_value(caps, TEMPERATURE_CAPABILITIES),
        "humidity": _capability_value(caps, HUMIDITY_CAPABILITIES),
    }


def _delegation_token(payload: Any) -> Optional[str]:
    """The delegation endpoint answers with a bare JSON string or {"token": ...}."""
    if isinstance(payload, str):
        return payload or None
    if isinstance(payload, dict):
        return payload.get("token")
    return None


class HomeyClient:
    """Reads device capabilities through the Homey cloud relay."""

    def __init__(self, token_provider: HomeyTokenProvider, session: requests.Session, *, timeout: float = 15.0) -> None:
        self.tokens = token_provider
        self.session = session
        self.timeout = timeout

    def _get_json(self, url: str, token: str, service: str, **kwargs) -> Any:
        resp = self.session.get(url, headers={"Authorization": f"Bearer {token}"}, timeout=self.timeout, **kwargs)
        if resp.status_code == 401:
            self.tokens.invalidate()
        raise_for_upstream(resp, service)
        return resp.json()

    def _first_homey_id(self, token: str) -> str:
        homeys = self._get_json(HOMEY_LIST_URL, token, "homey list")
        if not homeys:
            raise UpstreamError("No Homey devices found on this account", service="homey list")
        return homeys[0]["_id"]

    def _homey_token(self, token: str, homey_id: str) -> str:
        resp = self.session.post(
            HOMEY_DELEGATION_URL,
            params={"audience": "homey"},
            json={"homey": homey_id},
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.timeout,
        )
        if resp.status_code == 401:
            self.tokens.invalidate()
        raise_for_upstream(resp, "homey delegation")
        delegated = _delegation_token(resp.json())
        if not delegated:
            raise UpstreamAuthError("Homey delegation response had no token", service="homey delegation")
        return delegated

    def get_device_reading(self, device_id: str, humidity_device_id: str | None = None) -> dict:
        """Return `{"temperature", "humidity"}` for a device, None for missing values.

        When the temperature device reports no humidity and a separate
        humidity device is given, humidity is read from that device instead.
        """
        token = self.tokens.get_valid_credential()
        homey_id = self._first_homey_id(token)
        homey_token = self._homey_token(token, homey_id)

        device = self._get_json(
            HOMEY_DEVICE_URL.format(homey_id=homey_id, device_id=device_id), homey_token, "homey device"
        )
        reading = normalize_device_reading(device)

        if reading["humidity"] is None and humidity_device_id and humidity_device_id != device_id:
            other = self._get_json(
                HOMEY_DEVICE_URL.format(homey_id=homey_id, device_id=humidity_device_id), homey_token, "homey device"
            )
            reading["humidity"] = normalize_device_reading(other)["humidity"]
        return reading
