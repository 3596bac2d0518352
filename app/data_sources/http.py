"""
Shared HTTP session factory and upstream status mapping.

Sessions carry the dashboard's User-Agent (met.no requires one) and a default
timeout so that no adapter call can hang a refresh indefinitely. Retrying is
done by :class:`app.retry.RetryPolicy`, not by the transport adapter.
"""
from __future__ import annotations

import requests

from app.errors import UpstreamAuthError, UpstreamError

DEFAULT_TIMEOUT = 15  # seconds


def create_session(user_agent: str, timeout: float = DEFAULT_TIMEOUT) -> requests.Session:
    """
    Build a ``requests.Session`` with identifying headers and a default timeout.

    Args:
        user_agent: Value of the ``User-Agent`` header sent on every request.
        timeout: Default timeout applied when a caller does not pass one.
    """
    s = requests.Session()
    s.headers["User-Agent"] = user_agent
    s.headers["Accept"] = "application/json"

    _original_send = s.send

    def _send_with_timeout(
        prepared: requests.PreparedRequest, **kwargs: object
    ) -> requests.Response:
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = timeout
        return _original_send(prepared, **kwargs)  # type: ignore[arg-type]

    s.send = _send_with_timeout  # type: ignore[method-assign]
    return s


def raise_for_upstream(resp, service: str) -> None:
    """Translate a non-2xx response into the matching UpstreamError."""
    status = resp.status_code
    if status < 400:
        return
    reason = getattr(resp, "reason", "") or ""
    message = f"{service} returned HTTP {status} {reason}".strip()
    if status in (401, 403):
        raise UpstreamAuthError(message, service=service, status_code=status)
    transient = status in (408, 429) or status >= 500
    raise UpstreamError(message, service=service, status_code=status, transient=transient)
