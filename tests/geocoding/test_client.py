import unittest

import httpx
import pybreaker

from historybox.core.errors import UpstreamUnavailable
from historybox.services.geocoding.client import GeocoderClient


def _client(handler) -> GeocoderClient:
    return GeocoderClient(
        base_url="https://geo.test",
        contact_email="ops@example.org",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        breaker=pybreaker.CircuitBreaker(fail_max=5),
    )


class TestGeocoderClient(unittest.TestCase):
    def test_search(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            seen["agent"] = request.headers.get("User-Agent")
            return httpx.Response(200, json=[
                {"display_name": "Tehran, Iran", "lat": "35.6892", "lon": "51.3890", "type": "city"},
                {"display_name": "broken row"},
            ])

        results = _client(handler).search("  Tehran ", limit=50)
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].lat, 35.6892)
        self.assertEqual(results[0].type, "city")
        self.assertEqual(seen["params"]["q"], "Tehran")
        self.assertEqual(seen["params"]["limit"], "10")
        self.assertEqual(seen["params"]["format"], "jsonv2")
        self.assertIn("ops@example.org", seen["agent"])

    def test_short_query_skips_provider(self):
        def handler(request):
            raise AssertionError("provider must not be called")

        self.assertEqual(_client(handler).search("a"), [])
        self.assertEqual(_client(handler).search(None), [])

    def test_provider_failure(self):
        client = _client(lambda request: httpx.Response(502, text="bad gateway"))
        with self.assertRaises(UpstreamUnavailable) as ctx:
            client.search("Tehran")
        self.assertEqual(ctx.exception.detail["payload"], {"raw": "bad gateway"})
