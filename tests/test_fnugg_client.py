import unittest

from app.data_sources.fnugg_client import FNUGG_RESORT_URL, FnuggClient, LIFT_NAME_FRAGMENTS, normalize_resort
from app.errors import UpstreamError


class DummyResp:
    def __init__(self, payload, status_code=200, reason="OK"):
        self._payload = payload
        self.status_code = status_code
        self.reason = reason

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, resp):
        self.resp = resp
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.resp


def _resort_doc():
    return {
        "name": "Hafjell",
        "conditions": {
            "combined": {
                "top": {
                    "temperature": {"value": -4.0},
                    "weather": {"description": "Lett snø"},
                    "wind": {"speed": 6.5},
                    "snow": {"depth": 120, "lastDay": 0},
                },
                "bottom": {
                    "temperature": {"value": 0},
                    "condition_description": "Skyet",
                    "wind": {"mps": "2.1"},
                    "snow": {"depth": "85", "today": 3},
                },
            },
        },
        "lifts": {
            "open": 2,
            "count": 3,
            "list": [
                {"name": "A. Gondolen", "status": {"isOpen": True}},
                {"name": "C. Hafjellheis 1", "status": "open"},
                {"name": "D. Kjusheisen", "status": "closed"},
                {"name": "Trollbarnehage", "status": "open"},
            ],
        },
    }


class TestNormalizeResort(unittest.TestCase):
    def test_search_hit_is_unwrapped(self):
        conditions = normalize_resort({"_id": "18", "_source": _resort_doc()})
        self.assertEqual(conditions["name"], "Hafjell")
        self.assertEqual(conditions["top"], {
            "temperature": -4.0,
            "condition": "Lett snø",
            "wind_speed": 6.5,
            "snow_depth": 120.0,
            "snow_last_day": 0.0,
        })

    def test_bare_document_and_field_fallbacks(self):
        bottom = normalize_resort(_resort_doc())["bottom"]
        self.assertEqual(bottom["temperature"], 0.0)
        self.assertEqual(bottom["condition"], "Skyet")
        self.assertEqual(bottom["wind_speed"], 2.1)
        self.assertEqual(bottom["snow_depth"], 85.0)
        self.assertEqual(bottom["snow_last_day"], 3.0)

    def test_missing_conditions_use_placeholders(self):
        conditions = normalize_resort({"name": "Hafjell"})
        self.assertEqual(conditions["top"]["condition"], "Unknown")
        self.assertIsNone(conditions["top"]["temperature"])
        self.assertIsNone(conditions["bottom"]["snow_depth"])

    def test_every_known_lift_is_reported(self):
        lifts = normalize_resort(_resort_doc())["lifts"]
        self.assertEqual(set(lifts), set(LIFT_NAME_FRAGMENTS))
        self.assertEqual(lifts["gondolen"], 1)
        self.assertEqual(lifts["hafjellheis1"], 1)
        self.assertEqual(lifts["kjusheisen"], 0)
        self.assertEqual(lifts["vidsynexpressen"], 0)

    def test_non_object_payload(self):
        with self.assertRaises(UpstreamError):
            normalize_resort(["unexpected"])


class TestFnuggClient(unittest.TestCase):
    def test_get_conditions(self):
        session = FakeSession(DummyResp(_resort_doc()))
        client = FnuggClient(18, session, timeout=20)

        conditions = client.get_conditions()

        self.assertEqual(session.calls[0][0], FNUGG_RESORT_URL.format(resort_id=18))
        self.assertEqual(session.calls[0][1]["timeout"], 20)
        self.assertEqual(conditions["top"]["temperature"], -4.0)

    def test_server_error_is_transient(self):
        client = FnuggClient(18, FakeSession(DummyResp({}, status_code=503, reason="Service Unavailable")))
        with self.assertRaises(UpstreamError) as ctx:
            client.get_conditions()
        self.assertTrue(ctx.exception.transient)


if __name__ == "__main__":
    unittest.main()
