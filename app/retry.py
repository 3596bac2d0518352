"""Shared retry policy for outbound upstream calls."""
from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

import requests

from app.errors import UpstreamError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="retry")

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    """Return True for failures that a later attempt may not hit again."""
    if isinstance(exc, UpstreamError):
        return exc.transient
    return isinstance(exc, (requests.ConnectionError, requests.Timeout))


@dataclass
class RetryPolicy:
    """Exponential backoff with jitter.

    Attempt ``n`` (1-based) that fails transiently waits
    ``min(max_delay, base_delay * 2 ** (n - 1)) + uniform(0, jitter)`` seconds
    before the next one. Non-transient errors are raised immediately.
    """
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    jitter: float = 0.25
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)
    rand: Callable[[float, float], float] = field(default=random.uniform, repr=False)

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
            jitter=settings.retry_jitter_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt."""
        backoff = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        if self.jitter > 0:
            backoff += self.rand(0.0, self.jitter)
        return backoff

    def call(self, fn: Callable[..., T], *args, **kwargs) -> T:
        """Invoke `fn`, retrying transient failures up to `max_attempts` times."""
        attempt = 1
        while True:
            try:
                return fn(*args, **kwargs)
            except Exception as exc:
                if not is_transient(exc) or attempt >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "Transient upstream failure on attempt %d/%d, retrying in %.2fs: %s",
                    attempt, self.max_attempts, delay, exc,
                )
                self.sleep(delay)
                attempt += 1
