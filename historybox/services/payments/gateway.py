"""
Payment gateway client: POST {base}/api/create-payment, GET {base}/api/verify/{transaction_id}.

Responses are parsed into explicit result types instead of probing dict keys
at every call site; anything that does not fit lands in VerifyUnknownShape.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal
from urllib.parse import quote

import httpx
import pybreaker

from historybox.core.config import settings
from historybox.core.errors import UpstreamUnavailable
from historybox.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)


@dataclass
class CreatePaymentRequest:
    service_id: str
    order_id: str
    amount: int
    currency: str
    description: str
    callback_url: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "service_id": self.service_id,
            "order_id": self.order_id,
            "amount": self.amount,
            "currency": self.currency,
            "description": self.description,
        }
        if self.callback_url:
            payload["callback_url"] = self.callback_url
        return payload


@dataclass
class CreatePaymentResult:
    url: str
    order_id: str
    transaction_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class VerifySuccess:
    transaction_id: str
    order_id: str | None
    description: str | None
    amount: int | None
    currency: str | None
    raw: dict[str, Any]
    kind: Literal["success"] = "success"


@dataclass
class VerifyNotPaid:
    """Provider answered with a well-formed status other than success (pending / failed / ...)."""

    transaction_id: str
    status: str
    order_id: str | None
    raw: dict[str, Any]
    kind: Literal["not_paid"] = "not_paid"


@dataclass
class VerifyUnknownShape:
    transaction_id: str
    raw: Any
    kind: Literal["unknown"] = "unknown"


VerifyResult = VerifySuccess | VerifyNotPaid | VerifyUnknownShape


def _opt_str(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    return value if isinstance(value, str) else None


def _opt_int(payload: dict[str, Any], key: str) -> int | None:
    value = payload.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def parse_verify_payload(transaction_id: str, payload: Any) -> VerifyResult:
    if not isinstance(payload, dict):
        return VerifyUnknownShape(transaction_id=transaction_id, raw=payload)
    status = _opt_str(payload, "status")
    if status is None:
        return VerifyUnknownShape(transaction_id=transaction_id, raw=payload)
    if status.lower() != "success":
        return VerifyNotPaid(
            transaction_id=transaction_id,
            status=status,
            order_id=_opt_str(payload, "order_id"),
            raw=payload,
        )
    return VerifySuccess(
        transaction_id=transaction_id,
        order_id=_opt_str(payload, "order_id"),
        description=_opt_str(payload, "description"),
        amount=_opt_int(payload, "amount"),
        currency=_opt_str(payload, "currency"),
        raw=payload,
    )


class PaymentGatewayClient(UpstreamClient):
    provider = "payment_gateway"

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        http_client: httpx.Client | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
    ) -> None:
        key = api_key if api_key is not None else settings.pay_api_key
        super().__init__(
            base_url=base_url or settings.pay_base_url,
            timeout=timeout or settings.pay_timeout,
            http_client=http_client,
            breaker=breaker,
            headers={"X-API-Key": key} if key else None,
        )

    def create_payment(self, request: CreatePaymentRequest) -> CreatePaymentResult:
        payload = self._request("POST", "/api/create-payment", json=request.to_payload())
        if not isinstance(payload, dict):
            raise UpstreamUnavailable("Payment gateway returned an unexpected response", {"payload": payload})
        url = _opt_str(payload, "url") or _opt_str(payload, "payment_url")
        if not url:
            logger.warning("payment_create_unknown_shape", extra={"order_id": request.order_id, "payload": payload})
            raise UpstreamUnavailable("Payment gateway returned no payment url", {"payload": payload})
        return CreatePaymentResult(
            url=url,
            order_id=_opt_str(payload, "order_id") or request.order_id,
            transaction_id=_opt_str(payload, "transaction_id"),
            raw=payload,
        )

    def verify(self, transaction_id: str) -> VerifyResult:
        payload = self._request("GET", f"/api/verify/{quote(transaction_id, safe='')}")
        return parse_verify_payload(transaction_id, payload)
