"""Interfaces and helpers for upstream data sources."""

from __future__ import annotations

import time
from typing import Any, Protocol

import requests

from app.app_types import SourceName, SourceResult
from app.errors import UpstreamTimeoutError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/base")


class SourceAdapter(Protocol):
    """Anything that can fetch and normalize one upstream into a SourceResult."""

    name: SourceName

    def fetch(self) -> SourceResult:
        """Fetch the upstream; must never raise."""
        ...


def describe_error(exc: BaseException) -> str:
    """Short, log-friendly description of an adapter failure."""
    if isinstance(exc, requests.Timeout):
        return f"timeout: {exc}"
    if isinstance(exc, UpstreamTimeoutError):
        return f"timeout: {exc}"
    message = str(exc) or exc.__class__.__name__
    return f"{exc.__class__.__name__}: {message}"


class BaseAdapter:
    """Wraps `_fetch()` so that every failure is captured into the result."""

    name: SourceName

    def _fetch(self) -> Any:
        """Return normalized data for this source or raise."""
        raise NotImplementedError

    def fetch(self) -> SourceResult:
        started = time.monotonic()
        try:
            data = self._fetch()
        except Exception as exc:
            elapsed = int((time.monotonic() - started) * 1000)
            error = describe_error(exc)
            logger.warning("Source fetch failed", extra={"source": self.name.value, "error": error})
            return SourceResult.failed(self.name, error, duration_ms=elapsed)
        elapsed = int((time.monotonic() - started) * 1000)
        logger.info("Source fetched", extra={"source": self.name.value, "duration_ms": elapsed})
        return SourceResult.ok(self.name, data, duration_ms=elapsed)
