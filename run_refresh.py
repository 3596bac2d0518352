"""
One-shot refresh for a cron schedule (every 5 minutes in production):

    */5 * * * * cd /srv/weather && python run_refresh.py

Exits 1 when every source failed so the scheduler can alert.
"""
import os
import sys

from app.cache_manager import get_store
from app.config import settings
from app.coordinator import RefreshCoordinator
from app.data_sources import build_adapters
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="refresh_job")


def main() -> int:
    """Run the coordinator once against the configured store."""
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"), job_name="refresh")
    store = get_store()
    if not store.ping():
        logger.error("Cache store unavailable; aborting refresh")
        return 2
    coordinator = RefreshCoordinator.from_settings(build_adapters(settings), store, settings)
    summary = coordinator.refresh()
    for result in summary.results:
        if not result.success:
            logger.warning(f"{result.source_name.value} failed: {result.error}")
    return 1 if summary.all_failed else 0


if __name__ == "__main__":
    sys.exit(main())
