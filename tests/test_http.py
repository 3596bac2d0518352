import unittest

import requests
from requests.adapters import BaseAdapter

from app.data_sources.http import create_session, raise_for_upstream
from app.errors import UpstreamAuthError, UpstreamError


class DummyResp:
    def __init__(self, status_code, reason=""):
        self.status_code = status_code
        self.reason = reason


class RecordingTransport(BaseAdapter):
    def __init__(self):
        super().__init__()
        self.sent = []

    def send(self, request, **kwargs):
        self.sent.append((request, kwargs))
        resp = requests.Response()
        resp.status_code = 200
        resp._content = b"{}"
        resp.request = request
        resp.url = request.url
        return resp

    def close(self):
        pass


class TestCreateSession(unittest.TestCase):
    def setUp(self):
        self.transport = RecordingTransport()
        self.session = create_session("TestAgent/1.0", timeout=7)
        self.session.mount("https://", self.transport)

    def test_default_timeout_and_headers(self):
        self.session.get("https://api.met.no/weatherapi")
        request, kwargs = self.transport.sent[-1]
        self.assertEqual(kwargs["timeout"], 7)
        self.assertEqual(request.headers["User-Agent"], "TestAgent/1.0")
        self.assertEqual(request.headers["Accept"], "application/json")

    def test_explicit_timeout_wins(self):
        self.session.get("https://api.met.no/weatherapi", timeout=2)
        self.assertEqual(self.transport.sent[-1][1]["timeout"], 2)


class TestRaiseForUpstream(unittest.TestCase):
    def test_success_passes(self):
        raise_for_upstream(DummyResp(200), "fnugg")

    def test_auth_failures(self):
        for status in (401, 403):
            with self.assertRaises(UpstreamAuthError) as ctx:
                raise_for_upstream(DummyResp(status, "Unauthorized"), "homey device")
            self.assertFalse(ctx.exception.transient)
            self.assertEqual(ctx.exception.status_code, status)

    def test_transient_statuses(self):
        for status in (408, 429, 500, 503):
            with self.assertRaises(UpstreamError) as ctx:
                raise_for_upstream(DummyResp(status), "met.no")
            self.assertTrue(ctx.exception.transient)

    def test_other_client_errors_are_permanent(self):
        with self.assertRaises(UpstreamError) as ctx:
            raise_for_upstream(DummyResp(404, "Not Found"), "fnugg")
        self.assertFalse(ctx.exception.transient)
        self.assertEqual(str(ctx.exception), "fnugg returned HTTP 404 Not Found")


if __name__ == "__main__":
    unittest.main()
