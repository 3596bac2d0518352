"""Application configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger, mask_url
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the weather dashboard service."""
    model_config = SettingsConfigDict(env_prefix="WEATHER_", extra="ignore")

    # cache store
    redis_url: str | None = None
    cache_key_prefix: str = "wk:weather:"
    cache_ttl_seconds: int = 900
    history_ttl_seconds: int = 86400
    history_max_length: int = 48  # 12 hours at 15-minute refreshes

    # endpoint security
    refresh_secret: str | None = None
    dashboard_username: str | None = None
    dashboard_password: str | None = None

    # sensor hub (Homey cloud)
    homey_client_id: str | None = None
    homey_client_secret: str | None = None
    homey_refresh_token: str | None = None
    homey_device_id_temp: str | None = None
    homey_device_id_humidity: str | None = None

    # resort feed (Fnugg) and forecast (met.no)
    resort_id: int = 18
    forecast_latitude: float = 61.2430
    forecast_longitude: float = 10.4900
    forecast_hours: int = 48

    # outbound HTTP
    user_agent: str = "WKWeatherDashboard/2.0 (github.com/wk-weather-dashboard)"
    sensor_timeout_seconds: float = 15.0
    resort_timeout_seconds: float = 20.0
    forecast_timeout_seconds: float = 10.0
    adapter_deadline_seconds: float = 60.0
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 0.5
    retry_max_delay_seconds: float = 8.0
    retry_jitter_seconds: float = 0.25

    @field_validator("user_agent", mode="after")
    @classmethod
    def require_user_agent(cls, v: str) -> str:
        """met.no rejects requests without an identifying User-Agent."""
        v = str(v).strip()
        if not v:
            raise ValueError("user_agent must not be empty")
        return v

    @field_validator("history_max_length", "retry_max_attempts", mode="after")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        """Bounded lengths and attempt counts must be positive."""
        if v < 1:
            raise ValueError("must be >= 1")
        return v


settings = Settings()


if __name__ == "__main__":
    logger.logger.setLevel("DEBUG")
    dumped = settings.model_dump()
    dumped["redis_url"] = mask_url(dumped["redis_url"])
    for secret in ("refresh_secret", "dashboard_password", "homey_client_secret", "homey_refresh_token"):
        if dumped.get(secret):
            dumped[secret] = "***"
    logger.debug(f"Loaded settings: {dumped}")
