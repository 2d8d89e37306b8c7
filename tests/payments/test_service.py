"""
PaymentService: checkout validation/rate limit and exactly-once crediting.
"""
import unittest
from unittest.mock import MagicMock, patch

import redis

from historybox.core.errors import InvalidInput, RateLimited, UpstreamUnavailable
from historybox.models.payment import CoinPayment
from historybox.models.user import User
from historybox.services.payments.gateway import (
    CreatePaymentResult,
    VerifyNotPaid,
    VerifySuccess,
    VerifyUnknownShape,
)
from historybox.services.payments.service import PaymentService
from tests.support import add_user, new_session

ORDER_ID = "hb_lite_1700000000000_x7y2z9"


def _success(transaction_id="abc123", order_id=ORDER_ID, description=None) -> VerifySuccess:
    raw = {"status": "success", "order_id": order_id, "amount": 249000, "currency": "IRR"}
    return VerifySuccess(
        transaction_id=transaction_id,
        order_id=order_id,
        description=description,
        amount=249000,
        currency="IRR",
        raw=raw,
    )


class TestVerifyAndCredit(unittest.TestCase):
    def setUp(self):
        self.db = new_session()
        self.user = add_user(self.db, "sub-1", coins=5)
        self.gateway = MagicMock()
        self.gateway.verify.return_value = _success()
        self.service = PaymentService(self.db, self.gateway)

    def tearDown(self):
        self.db.close()

    def _coins(self) -> int:
        self.db.expire_all()
        return self.db.query(User).filter(User.id == self.user.id).one().coins

    def test_credits_once(self):
        result = self.service.verify_and_credit("abc123", "sub-1")
        self.db.commit()
        self.assertEqual(result.status, "success")
        self.assertEqual(result.plan_id, "lite")
        self.assertTrue(result.credited)
        self.assertEqual(result.coins_added, 50)
        self.assertEqual(result.new_balance, 55)
        self.assertEqual(self._coins(), 55)

        again = self.service.verify_and_credit("abc123", "sub-1")
        self.db.commit()
        self.assertFalse(again.credited)
        self.assertTrue(again.already_processed)
        self.assertEqual(again.new_balance, 55)
        self.assertEqual(again.order_id, ORDER_ID)
        self.assertEqual(self._coins(), 55)
        self.assertEqual(self.db.query(CoinPayment).count(), 1)
        self.assertEqual(self.gateway.verify.call_count, 1)

    def test_concurrent_credit_returns_stored_result(self):
        self.service.verify_and_credit("abc123", "sub-1")
        self.db.commit()

        # Second verify raced past the lookup before the first one committed
        real_lookup = self.service.get_payment_by_transaction_id
        lookups = []

        def miss_first(transaction_id):
            lookups.append(transaction_id)
            return None if len(lookups) == 1 else real_lookup(transaction_id)

        with patch.object(self.service, "get_payment_by_transaction_id", side_effect=miss_first):
            again = self.service.verify_and_credit("abc123", "sub-1")
        self.db.commit()

        self.assertFalse(again.credited)
        self.assertTrue(again.already_processed)
        self.assertEqual(again.new_balance, 55)
        self.assertEqual(len(lookups), 2)
        self.assertEqual(self._coins(), 55)
        self.assertEqual(self.db.query(CoinPayment).count(), 1)

    def test_not_paid(self):
        self.gateway.verify.return_value = VerifyNotPaid(
            transaction_id="abc123", status="failed", order_id=ORDER_ID, raw={"status": "failed"},
        )
        result = self.service.verify_and_credit("abc123", "sub-1")
        self.assertEqual(result.status, "failed")
        self.assertFalse(result.credited)
        self.assertEqual(self._coins(), 5)

    def test_unparseable_gateway_answer_is_upstream_error(self):
        self.gateway.verify.return_value = VerifyUnknownShape(transaction_id="abc123", raw={"ok": True})
        with self.assertRaises(UpstreamUnavailable) as ctx:
            self.service.verify_and_credit("abc123", "sub-1")
        self.assertEqual(ctx.exception.detail["payload"], {"ok": True})
        self.assertEqual(self._coins(), 5)
        self.assertEqual(self.db.query(CoinPayment).count(), 0)

    def test_plan_from_description(self):
        self.gateway.verify.return_value = _success(order_id="external-77", description="pro: 300 coins")
        result = self.service.verify_and_credit("abc123", "sub-1")
        self.assertEqual(result.plan_id, "pro")
        self.assertEqual(result.new_balance, 305)

    def test_undecodable_plan_is_success_without_credit(self):
        self.gateway.verify.return_value = _success(order_id="external-77", description="gift")
        result = self.service.verify_and_credit("abc123", "sub-1")
        self.assertEqual(result.status, "success")
        self.assertIsNone(result.plan_id)
        self.assertFalse(result.credited)
        self.assertEqual(self._coins(), 5)

    def test_no_session_or_unknown_user(self):
        self.assertFalse(self.service.verify_and_credit("abc123", None).credited)
        self.assertFalse(self.service.verify_and_credit("abc123", "ghost").credited)
        self.assertEqual(self.db.query(CoinPayment).count(), 0)
        self.assertEqual(self._coins(), 5)

    def test_upstream_failure_propagates(self):
        self.gateway.verify.side_effect = UpstreamUnavailable("payment_gateway timed out", {"reason": "timeout"})
        with self.assertRaises(UpstreamUnavailable):
            self.service.verify_and_credit("abc123", "sub-1")
        self.assertEqual(self._coins(), 5)

    def test_missing_transaction_id(self):
        with self.assertRaises(InvalidInput):
            self.service.verify_and_credit("", "sub-1")


class TestCheckout(unittest.TestCase):
    def setUp(self):
        self.db = new_session()
        self.gateway = MagicMock()
        self.gateway.create_payment.return_value = CreatePaymentResult(
            url="https://pay.test/p/1", order_id="hb_lite_1_abcdef",
        )

    def tearDown(self):
        self.db.close()

    def test_checkout(self):
        result = PaymentService(self.db, self.gateway).create_checkout("lite", "sub-1")
        self.assertEqual(result.url, "https://pay.test/p/1")
        request = self.gateway.create_payment.call_args.args[0]
        self.assertEqual(request.amount, 249000)
        self.assertTrue(request.order_id.startswith("hb_lite_"))

    def test_invalid_plan(self):
        with self.assertRaises(InvalidInput):
            PaymentService(self.db, self.gateway).create_checkout("platinum", "sub-1")
        self.gateway.create_payment.assert_not_called()

    def test_rate_limited(self):
        redis_client = MagicMock()
        redis_client.incr.return_value = 6
        with self.assertRaises(RateLimited):
            PaymentService(self.db, self.gateway, redis_client).create_checkout("lite", "sub-1")

    def test_rate_limit_fails_open(self):
        redis_client = MagicMock()
        redis_client.incr.side_effect = redis.ConnectionError("down")
        result = PaymentService(self.db, self.gateway, redis_client).create_checkout("lite", "sub-1")
        self.assertEqual(result.plan_id, "lite")
