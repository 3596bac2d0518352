import unittest
from unittest.mock import patch

import run_refresh
from app.app_types import SourceName, SourceResult
from app.cache_store import InMemoryCacheStore


class FakeAdapter:
    def __init__(self, name, error=None):
        self.name = name
        self.error = error

    def fetch(self):
        if self.error:
            return SourceResult.failed(self.name, self.error)
        return SourceResult.ok(self.name, {"temperature": 1.0})


class DownStore(InMemoryCacheStore):
    def ping(self):
        return False


class TestRunRefresh(unittest.TestCase):
    def _run(self, store, adapters):
        with patch("run_refresh.setup_logging"), \
                patch("run_refresh.get_store", return_value=store), \
                patch("run_refresh.build_adapters", return_value=adapters):
            return run_refresh.main()

    def test_partial_success_exits_zero(self):
        store = InMemoryCacheStore()
        adapters = [FakeAdapter(SourceName.SENSOR, error="down"), FakeAdapter(SourceName.RESORT)]
        self.assertEqual(self._run(store, adapters), 0)
        self.assertIsNotNone(store.get("resort"))

    def test_all_failed_exits_one(self):
        adapters = [FakeAdapter(name, error="down") for name in SourceName]
        self.assertEqual(self._run(InMemoryCacheStore(), adapters), 1)

    def test_unreachable_store_exits_two(self):
        self.assertEqual(self._run(DownStore(), [FakeAdapter(SourceName.SENSOR)]), 2)


if __name__ == "__main__":
    unittest.main()
