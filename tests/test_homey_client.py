import unittest

from app.data_sources import homey_client
from app.data_sources.homey_client import HomeyClient, HomeyTokenProvider, normalize_device_reading
from app.errors import ConfigurationError, UpstreamAuthError, UpstreamError


class DummyResp:
    def __init__(self, payload=None, status_code=200, reason="OK"):
        self._payload = payload
        self.status_code = status_code
        self.reason = reason

    def json(self):
        return self._payload


class FakeSession:
    """Answers requests from a per-URL queue and records every call."""

    def __init__(self, routes):
        self.routes = {key: list(value) for key, value in routes.items()}
        self.calls = []

    def _respond(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        queue = self.routes[(method, url)]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def get(self, url, **kwargs):
        return self._respond("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._respond("POST", url, **kwargs)


def _device_url(device_id):
    return homey_client.HOMEY_DEVICE_URL.format(homey_id="homey-1", device_id=device_id)


def _routes(**devices):
    routes = {
        ("POST", homey_client.HOMEY_TOKEN_URL): [DummyResp({"access_token": "access-1", "expires_in": 3600})],
        ("GET", homey_client.HOMEY_LIST_URL): [DummyResp([{"_id": "homey-1", "name": "Cabin"}])],
        ("POST", homey_client.HOMEY_DELEGATION_URL): [DummyResp("delegated-1")],
    }
    for device_id, payload in devices.items():
        routes[("GET", _device_url(device_id))] = [payload if isinstance(payload, DummyResp) else DummyResp(payload)]
    return routes


class TestNormalizeDeviceReading(unittest.TestCase):
    def test_prefers_capabilities_obj_and_measure_names(self):
        device = {
            "capabilitiesObj": {
                "measure_temperature": {"value": 5.2},
                "temperature": {"value": 99},
                "measure_humidity": {"value": "81"},
            },
            "capabilities": ["measure_temperature", "measure_humidity"],
        }
        self.assertEqual(normalize_device_reading(device), {"temperature": 5.2, "humidity": 81.0})

    def test_falls_back_to_capabilities_dict_and_plain_names(self):
        device = {"capabilities": {"temperature": {"value": -1.5}, "humidity": {"value": 60}}}
        self.assertEqual(normalize_device_reading(device), {"temperature": -1.5, "humidity": 60.0})

    def test_missing_values_are_none(self):
        self.assertEqual(normalize_device_reading({"capabilities": ["onoff"]}), {"temperature": None, "humidity": None})
        reading = normalize_device_reading({"capabilitiesObj": {"measure_temperature": {"value": "n/a"}}})
        self.assertIsNone(reading["temperature"])


class TestHomeyTokenProvider(unittest.TestCase):
    def setUp(self):
        self.now = 1000.0
        self.session = FakeSession(_routes())
        self.tokens = HomeyTokenProvider("cid", "csecret", "refresh-1", self.session, clock=lambda: self.now)

    def _token_calls(self):
        return [c for c in self.session.calls if c[1] == homey_client.HOMEY_TOKEN_URL]

    def test_token_is_cached_until_close_to_expiry(self):
        self.assertEqual(self.tokens.get_valid_credential(), "access-1")
        self.now += 3600 - homey_client.TOKEN_REFRESH_MARGIN_SECONDS - 1
        self.tokens.get_valid_credential()
        self.assertEqual(len(self._token_calls()), 1)

        self.now += 2
        self.tokens.get_valid_credential()
        self.assertEqual(len(self._token_calls()), 2)

    def test_refresh_token_grant_request(self):
        self.tokens.get_valid_credential()
        _, _, kwargs = self._token_calls()[0]
        self.assertEqual(kwargs["data"], {"grant_type": "refresh_token", "refresh_token": "refresh-1"})
        self.assertEqual(kwargs["auth"], ("cid", "csecret"))

    def test_rotated_refresh_token_is_kept(self):
        self.session.routes[("POST", homey_client.HOMEY_TOKEN_URL)] = [
            DummyResp({"access_token": "access-2", "expires_in": 60, "refresh_token": "refresh-2"})
        ]
        self.tokens.get_valid_credential()
        self.assertEqual(self.tokens.refresh_token, "refresh-2")

    def test_invalidate_forces_new_token(self):
        self.tokens.get_valid_credential()
        self.tokens.invalidate()
        self.tokens.get_valid_credential()
        self.assertEqual(len(self._token_calls()), 2)

    def test_missing_configuration(self):
        tokens = HomeyTokenProvider("cid", None, None, self.session)
        with self.assertRaises(ConfigurationError) as ctx:
            tokens.get_valid_credential()
        self.assertIn("WEATHER_HOMEY_REFRESH_TOKEN", str(ctx.exception))
        self.assertEqual(self.session.calls, [])

    def test_rejected_refresh_token(self):
        self.session.routes[("POST", homey_client.HOMEY_TOKEN_URL)] = [DummyResp({}, status_code=401)]
        with self.assertRaises(UpstreamAuthError):
            self.tokens.get_valid_credential()


class TestHomeyClient(unittest.TestCase):
    def _client(self, routes):
        session = FakeSession(routes)
        tokens = HomeyTokenProvider("cid", "csecret", "refresh-1", session)
        return HomeyClient(tokens, session), session, tokens

    def test_reads_device_through_delegation(self):
        client, session, _ = self._client(_routes(dev_t={"capabilitiesObj": {
            "measure_temperature": {"value": 5.2}, "measure_humidity": {"value": 80}}}))

        self.assertEqual(client.get_device_reading("dev_t"), {"temperature": 5.2, "humidity": 80.0})
        delegation = [c for c in session.calls if c[1] == homey_client.HOMEY_DELEGATION_URL][0]
        self.assertEqual(delegation[2]["json"], {"homey": "homey-1"})
        device_call = session.calls[-1]
        self.assertEqual(device_call[2]["headers"], {"Authorization": "Bearer delegated-1"})

    def test_humidity_from_separate_device(self):
        client, _, _ = self._client(_routes(
            dev_t={"capabilitiesObj": {"measure_temperature": {"value": 4.0}}},
            dev_h={"capabilitiesObj": {"measure_humidity": {"value": 77}}},
        ))
        self.assertEqual(client.get_device_reading("dev_t", "dev_h"), {"temperature": 4.0, "humidity": 77.0})

    def test_unauthorized_device_read_invalidates_token(self):
        client, _, tokens = self._client(_routes(dev_t=DummyResp({}, status_code=401, reason="Unauthorized")))
        with self.assertRaises(UpstreamAuthError):
            client.get_device_reading("dev_t")
        self.assertIsNone(tokens._access_token)

    def test_account_without_homey(self):
        routes = _routes()
        routes[("GET", homey_client.HOMEY_LIST_URL)] = [DummyResp([])]
        client, _, _ = self._client(routes)
        with self.assertRaises(UpstreamError):
            client.get_device_reading("dev_t")

    def test_delegation_accepts_token_object(self):
        routes = _routes(dev_t={"capabilitiesObj": {}})
        routes[("POST", homey_client.HOMEY_DELEGATION_URL)] = [DummyResp({"token": "delegated-2"})]
        client, session, _ = self._client(routes)
        client.get_device_reading("dev_t")
        self.assertEqual(session.calls[-1][2]["headers"], {"Authorization": "Bearer delegated-2"})


if __name__ == "__main__":
    unittest.main()
