"""
Gateway client against httpx.MockTransport: request shape, response parsing, failure mapping.
"""
import json
import unittest

import httpx
import pybreaker

from historybox.core.errors import UpstreamUnavailable
from historybox.services.payments.gateway import (
    CreatePaymentRequest,
    PaymentGatewayClient,
    VerifyNotPaid,
    VerifySuccess,
    VerifyUnknownShape,
    parse_verify_payload,
)
from historybox.services.upstream import ProviderClientError


def _client(handler, fail_max=5) -> PaymentGatewayClient:
    return PaymentGatewayClient(
        base_url="https://pay.test",
        api_key="k-123",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        breaker=pybreaker.CircuitBreaker(fail_max=fail_max, reset_timeout=60, exclude=[ProviderClientError]),
    )


class TestCreatePayment(unittest.TestCase):
    def test_posts_payload_with_api_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("X-API-Key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"payment_url": "https://pay.test/p/1", "transaction_id": "tx1"})

        result = _client(handler).create_payment(CreatePaymentRequest(
            service_id="historybox",
            order_id="hb_lite_1_abcdef",
            amount=249000,
            currency="IRR",
            description="lite: 50 coins",
        ))
        self.assertEqual(seen["url"], "https://pay.test/api/create-payment")
        self.assertEqual(seen["key"], "k-123")
        self.assertEqual(seen["body"]["order_id"], "hb_lite_1_abcdef")
        self.assertNotIn("callback_url", seen["body"])
        self.assertEqual(result.url, "https://pay.test/p/1")
        self.assertEqual(result.order_id, "hb_lite_1_abcdef")

    def test_missing_url_is_upstream_error(self):
        client = _client(lambda request: httpx.Response(200, json={"ok": True}))
        with self.assertRaises(UpstreamUnavailable):
            client.create_payment(CreatePaymentRequest("historybox", "o", 1, "IRR", "d"))


class TestVerify(unittest.TestCase):
    def test_success(self):
        def handler(request):
            self.assertEqual(request.url.path, "/api/verify/abc123")
            return httpx.Response(200, json={
                "status": "success",
                "order_id": "hb_lite_1700000000000_x7y2z9",
                "amount": 249000,
                "currency": "IRR",
            })

        outcome = _client(handler).verify("abc123")
        self.assertIsInstance(outcome, VerifySuccess)
        self.assertEqual(outcome.order_id, "hb_lite_1700000000000_x7y2z9")
        self.assertEqual(outcome.amount, 249000)

    def test_transaction_id_is_escaped(self):
        def handler(request):
            self.assertEqual(request.url.raw_path, b"/api/verify/a%2Fb")
            return httpx.Response(200, json={"status": "pending"})

        self.assertIsInstance(_client(handler).verify("a/b"), VerifyNotPaid)

    def test_http_error_carries_payload(self):
        client = _client(lambda request: httpx.Response(404, json={"error": "unknown transaction"}))
        with self.assertRaises(UpstreamUnavailable) as ctx:
            client.verify("nope")
        self.assertEqual(ctx.exception.message, "unknown transaction")
        self.assertEqual(ctx.exception.detail["status_code"], 404)

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with self.assertRaises(UpstreamUnavailable) as ctx:
            _client(handler).verify("abc")
        self.assertEqual(ctx.exception.detail, {"reason": "timeout"})

    def test_breaker_opens_after_server_errors(self):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(503, json={"error": "down"})

        client = _client(handler, fail_max=2)
        for _ in range(2):
            with self.assertRaises(UpstreamUnavailable):
                client.verify("abc")
        with self.assertRaises(UpstreamUnavailable) as ctx:
            client.verify("abc")
        self.assertEqual(ctx.exception.detail, {"reason": "circuit_open"})
        self.assertEqual(len(calls), 2)

    def test_client_errors_do_not_open_breaker(self):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(400, json={"error": "bad"})

        client = _client(handler, fail_max=1)
        for _ in range(3):
            with self.assertRaises(UpstreamUnavailable):
                client.verify("abc")
        self.assertEqual(len(calls), 3)


class TestParseVerifyPayload(unittest.TestCase):
    def test_shapes(self):
        self.assertIsInstance(parse_verify_payload("t", ["x"]), VerifyUnknownShape)
        self.assertIsInstance(parse_verify_payload("t", {"order_id": "x"}), VerifyUnknownShape)
        not_paid = parse_verify_payload("t", {"status": "failed", "order_id": "o"})
        self.assertIsInstance(not_paid, VerifyNotPaid)
        self.assertEqual(not_paid.status, "failed")
        self.assertIsInstance(parse_verify_payload("t", {"status": "SUCCESS"}), VerifySuccess)
