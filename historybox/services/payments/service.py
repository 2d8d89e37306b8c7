"""
PaymentService: coin purchases through the external gateway.

Responsibilities:
- Checkout: plan validation, per-buyer rate limit, create-payment call
- Verification: confirm a transaction with the gateway and credit coins exactly once
  (coin_payments.transaction_id is unique; a repeat returns the stored result)
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import redis
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from historybox.core.config import settings
from historybox.core.errors import AlreadyProcessed, InvalidInput, RateLimited, UpstreamUnavailable
from historybox.models.payment import CoinPayment
from historybox.models.user import User
from historybox.services.coins.ledger import CoinLedger
from historybox.services.payments.gateway import (
    CreatePaymentRequest,
    PaymentGatewayClient,
    VerifyNotPaid,
    VerifySuccess,
    VerifyUnknownShape,
)
from historybox.services.payments.plans import decode_plan_id, encode_order_id, get_plan
from historybox.utils.metrics import payment_verifications_total

logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    url: str
    order_id: str
    plan_id: str


@dataclass
class VerificationResult:
    status: str  # success / failed
    transaction_id: str
    order_id: str | None = None
    amount: int | None = None
    currency: str | None = None
    plan_id: str | None = None
    credited: bool = False
    already_processed: bool = False
    coins_added: int = 0
    new_balance: int | None = None
    verify: Any = field(default_factory=dict)


class PaymentService:
    def __init__(self, db: Session, gateway: PaymentGatewayClient, redis_client: redis.Redis | None = None):
        self.db = db
        self.gateway = gateway
        self._redis = redis_client
        self.ledger = CoinLedger(db)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create_checkout(self, plan_id: str | None, buyer_key: str) -> CheckoutResult:
        """Start a gateway payment for a plan. buyer_key scopes the rate limit (user id or client ip)."""
        plan = get_plan(plan_id)
        if not plan:
            raise InvalidInput("Invalid plan", {"plan_id": plan_id})
        if not self._check_rate_limit(buyer_key):
            raise RateLimited("Too many checkout attempts. Try again later.")

        order_id = encode_order_id(plan.id)
        result = self.gateway.create_payment(CreatePaymentRequest(
            service_id=settings.pay_service_id,
            order_id=order_id,
            amount=plan.price_irr,
            currency=settings.pay_currency,
            description=plan.description,
            callback_url=settings.pay_callback_url or None,
        ))
        logger.info(
            "checkout_created",
            extra={"order_id": result.order_id, "plan_id": plan.id, "transaction_id": result.transaction_id},
        )
        return CheckoutResult(url=result.url, order_id=result.order_id, plan_id=plan.id)

    # ------------------------------------------------------------------
    # Verification & crediting
    # ------------------------------------------------------------------

    def get_payment_by_transaction_id(self, transaction_id: str) -> CoinPayment | None:
        return (
            self.db.query(CoinPayment)
            .filter(CoinPayment.transaction_id == transaction_id)
            .one_or_none()
        )

    def verify_and_credit(self, transaction_id: str, session_external_id: str | None = None) -> VerificationResult:
        """
        Confirm transaction_id with the gateway and credit the session user's coins.

        - gateway unreachable / non-2xx / unparseable answer -> UpstreamUnavailable (not retried here)
        - status != success -> status="failed", no ledger change
        - success but no decodable plan -> success, credited=False
        - already credited earlier -> stored result, credited=False, already_processed=True
        """
        if not transaction_id:
            raise InvalidInput("Missing transaction_id")

        existing = self.get_payment_by_transaction_id(transaction_id)
        if existing:
            return self._already_processed(existing)

        outcome = self.gateway.verify(transaction_id)

        if isinstance(outcome, VerifyUnknownShape):
            payment_verifications_total.labels(outcome="error").inc()
            logger.error(
                "payment_verify_unknown_shape",
                extra={"transaction_id": transaction_id, "payload": outcome.raw},
            )
            raise UpstreamUnavailable(
                "Payment gateway returned an unexpected response",
                {"transaction_id": transaction_id, "payload": outcome.raw},
            )

        if isinstance(outcome, VerifyNotPaid):
            payment_verifications_total.labels(outcome="failed").inc()
            logger.warning(
                "payment_verify_failed",
                extra={"transaction_id": transaction_id, "provider_status": outcome.status, "payload": outcome.raw},
            )
            return VerificationResult(
                status="failed",
                transaction_id=transaction_id,
                order_id=outcome.order_id,
                verify=outcome.raw,
            )

        plan_id = decode_plan_id(outcome.order_id, outcome.description)
        result = VerificationResult(
            status="success",
            transaction_id=transaction_id,
            order_id=outcome.order_id,
            amount=outcome.amount,
            currency=outcome.currency,
            plan_id=plan_id,
            verify=outcome.raw,
        )
        if not plan_id:
            payment_verifications_total.labels(outcome="no_plan").inc()
            logger.warning(
                "plan_decode_failed",
                extra={"transaction_id": transaction_id, "order_id": outcome.order_id, "payload": outcome.raw},
            )
            return result
        if not session_external_id:
            payment_verifications_total.labels(outcome="no_user").inc()
            logger.info("payment_verified_without_session", extra={"transaction_id": transaction_id})
            return result

        user = (
            self.db.query(User)
            .filter(User.external_id == session_external_id)
            .with_for_update()
            .one_or_none()
        )
        if not user:
            payment_verifications_total.labels(outcome="no_user").inc()
            logger.error(
                "payment_user_not_found",
                extra={"transaction_id": transaction_id, "external_id": session_external_id},
            )
            return result

        return self._credit(user, outcome, plan_id, result)

    def _claim_transaction(self, user: User, outcome: VerifySuccess, plan) -> CoinPayment:
        """
        Insert the coin_payments guard row. A second claim of the same transaction
        (earlier request or a concurrent one) raises AlreadyProcessed.
        """
        payment = CoinPayment(
            transaction_id=outcome.transaction_id,
            user_id=user.id,
            plan_id=plan.id,
            coins_granted=plan.coins,
            order_id=outcome.order_id,
            amount=outcome.amount,
            currency=outcome.currency,
            payload=json.dumps(outcome.raw, ensure_ascii=False, default=str),
        )
        try:
            self.db.add(payment)
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            logger.warning("payment_duplicate", extra={"transaction_id": outcome.transaction_id})
            raise AlreadyProcessed("Transaction already credited", {"transaction_id": outcome.transaction_id})
        return payment

    def _credit(self, user: User, outcome: VerifySuccess, plan_id: str, result: VerificationResult) -> VerificationResult:
        plan = get_plan(plan_id)
        try:
            payment = self._claim_transaction(user, outcome, plan)
        except AlreadyProcessed:
            existing = self.get_payment_by_transaction_id(outcome.transaction_id)
            if existing is None:
                raise
            return self._already_processed(existing)

        new_balance = self.ledger.credit(user.id, plan.coins, reason="purchase")
        payment.balance_after = new_balance
        self.db.flush()

        payment_verifications_total.labels(outcome="credited").inc()
        logger.info(
            "payment_completed",
            extra={
                "user_id": user.id,
                "transaction_id": outcome.transaction_id,
                "plan_id": plan.id,
                "coins": plan.coins,
                "new_balance": new_balance,
            },
        )
        result.credited = True
        result.coins_added = plan.coins
        result.new_balance = new_balance
        return result

    def _already_processed(self, payment: CoinPayment) -> VerificationResult:
        payment_verifications_total.labels(outcome="already_processed").inc()
        logger.info("payment_already_processed", extra={"transaction_id": payment.transaction_id})
        try:
            raw = json.loads(payment.payload or "{}")
        except ValueError:
            raw = {}
        return VerificationResult(
            status="success",
            transaction_id=payment.transaction_id,
            order_id=payment.order_id,
            amount=payment.amount,
            currency=payment.currency,
            plan_id=payment.plan_id,
            credited=False,
            already_processed=True,
            coins_added=0,
            new_balance=payment.balance_after,
            verify=raw,
        )

    # ------------------------------------------------------------------
    # Rate-limit (Redis, shared by all workers)
    # ------------------------------------------------------------------

    def _check_rate_limit(self, buyer_key: str) -> bool:
        """At most checkout_rate_limit checkouts per window per buyer."""
        if self._redis is None:
            return True
        key = f"checkout_rate:{buyer_key}"
        try:
            current = self._redis.incr(key)
            if current == 1:
                self._redis.expire(key, settings.checkout_rate_window_seconds)
            return current <= settings.checkout_rate_limit
        except redis.RedisError as e:
            logger.warning("checkout_rate_limit_redis_error", extra={"error": str(e)})
            return True  # fail open
