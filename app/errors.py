"""Exception types shared by adapters, the cache store and the API layer."""


class DashboardError(Exception):
    """Base class for errors raised inside the dashboard service."""


class ConfigurationError(DashboardError):
    """A required setting is missing or invalid."""


class CacheStoreError(DashboardError):
    """The cache store could not be reached."""


class UpstreamError(DashboardError):
    """A third-party API returned an error or an unusable response.

    `transient` marks failures worth retrying (network errors, timeouts,
    429 and 5xx responses).
    """

    def __init__(self, message: str, *, service: str | None = None,
                 status_code: int | None = None, transient: bool = False) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code
        self.transient = transient


class UpstreamAuthError(UpstreamError):
    """The upstream rejected our credential (401/403)."""

    def __init__(self, message: str, *, service: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message, service=service, status_code=status_code, transient=False)


class UpstreamTimeoutError(UpstreamError):
    """An upstream call did not finish within its time budget."""

    def __init__(self, message: str, *, service: str | None = None) -> None:
        super().__init__(message, service=service, transient=True)
