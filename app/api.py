"""HTTP API for the weather dashboard: cached reads, authorized refresh, login check."""

import hmac
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .app_types import utc_now
from .cache_manager import get_store
from .cache_store import CacheStore
from .config import settings
from .coordinator import RefreshCoordinator
from .data_sources import build_adapters
from .errors import CacheStoreError, ConfigurationError
from .read_service import ALL, UnknownDataKind, get_cached
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="app/api")

router = APIRouter()
ADAPTERS = build_adapters(settings)


def _secrets_match(given: Optional[str], expected: str) -> bool:
    """Constant-time comparison that also accepts non-ASCII input."""
    return hmac.compare_digest((given or "").encode("utf-8"), str(expected).encode("utf-8"))


def get_coordinator(store: CacheStore = Depends(get_store)) -> RefreshCoordinator:
    """Coordinator over the configured adapters writing to the request's store."""
    return RefreshCoordinator.from_settings(ADAPTERS, store, settings)


def require_refresh_secret(authorization: str | None = Header(default=None)):
    """
    Validate `Authorization: Bearer <secret>` against the configured refresh secret.
    """
    if not settings.refresh_secret:
        logger.error("Refresh requested but WEATHER_REFRESH_SECRET is not configured")
        raise ConfigurationError("Refresh secret not configured (set WEATHER_REFRESH_SECRET)")

    if not authorization:
        logger.debug("No Authorization header provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not _secrets_match(token.strip(), settings.refresh_secret):
        logger.debug("Invalid refresh token provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


class DataResponse(BaseModel):
    """Cached data payload for the dashboard."""
    success: bool = True
    type: str
    cached: bool
    data: Any = None
    timestamp: datetime


class RefreshResponse(BaseModel):
    """Outcome of a manual or scheduled refresh."""
    success: bool = True
    message: str
    summary: dict
    timestamp: datetime


class HealthResponse(BaseModel):
    """Store reachability report."""
    success: bool
    store: str
    timestamp: datetime


class LoginRequest(BaseModel):
    """Dashboard login form."""
    username: str = ""
    password: str = ""


class LoginResponse(BaseModel):
    """Login outcome; the browser keeps its own session flag."""
    success: bool
    message: str
    timestamp: datetime


@router.get("/data", response_model=DataResponse)
def read_data(
    data_type: str = Query(default=ALL, alias="type"),
    store: CacheStore = Depends(get_store),
    coordinator: RefreshCoordinator = Depends(get_coordinator),
):
    """Serve cached data; a cold aggregate view triggers one synchronous refresh."""
    try:
        result = get_cached(data_type, store, coordinator)
    except UnknownDataKind as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    if not result.found:
        if result.errors:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"message": "All upstream sources failed", "errors": result.errors},
            )
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No cached data for '{result.kind}'")

    return DataResponse(type=result.kind, cached=result.cached, data=result.data, timestamp=utc_now())


@router.post("/refresh", response_model=RefreshResponse, dependencies=[Depends(require_refresh_secret)])
def refresh_data(
    store: CacheStore = Depends(get_store),
    coordinator: RefreshCoordinator = Depends(get_coordinator),
):
    """Run the refresh coordinator once; only an unreachable store fails the request."""
    if not store.ping():
        raise CacheStoreError("Cache store unavailable")

    summary = coordinator.refresh()
    return RefreshResponse(
        message=f"Refresh completed: {summary.succeeded}/{len(summary.results)} sources updated",
        summary=summary.to_dict(),
        timestamp=utc_now(),
    )


@router.get("/health", response_model=HealthResponse)
def health(store: CacheStore = Depends(get_store)):
    """Report whether the cache store answers."""
    reachable = store.ping()
    body = HealthResponse(success=reachable, store=store.__class__.__name__, timestamp=utc_now())
    if not reachable:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.model_dump(mode="json"))
    return body


@router.post("/auth", response_model=LoginResponse)
def login(req: LoginRequest):
    """Check dashboard credentials against the configured username/password."""
    if not settings.dashboard_username or not settings.dashboard_password:
        logger.error("Dashboard credentials not configured")
        raise ConfigurationError(
            "Authentication not configured (set WEATHER_DASHBOARD_USERNAME and WEATHER_DASHBOARD_PASSWORD)"
        )
    if not req.username or not req.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username and password are required")

    # Both comparisons always run.
    user_ok = _secrets_match(req.username, settings.dashboard_username)
    pass_ok = _secrets_match(req.password, settings.dashboard_password)
    if not (user_ok and pass_ok):
        logger.info("Failed dashboard login attempt")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    logger.info("Successful dashboard login")
    return LoginResponse(success=True, message="Authenticated", timestamp=utc_now())
