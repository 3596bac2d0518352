"""FastAPI application setup for the weather dashboard backend."""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import router as api_router
from .app_types import utc_now
from .errors import CacheStoreError, ConfigurationError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="app/main")

app = FastAPI(title="WK Weather Dashboard")

# Dashboard page is served from another origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With"],
)


def _error_body(error, **extra) -> dict:
    body = {"success": False, "error": error, "timestamp": utc_now().isoformat()}
    body.update(extra)
    return body


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    """Keep the `{success, timestamp}` envelope on error responses."""
    if isinstance(exc.detail, dict):
        detail = dict(exc.detail)
        body = _error_body(detail.pop("message", None), **detail)
    else:
        body = _error_body(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(CacheStoreError)
async def store_unavailable(request: Request, exc: CacheStoreError):
    logger.error("Cache store unavailable", extra={"path": request.url.path})
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=_error_body(str(exc)))


@app.exception_handler(ConfigurationError)
async def misconfigured(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_body(str(exc)))


app.include_router(api_router)
