"""
Coin plans and the order id scheme hb_<planId>_<epochMillis>_<random6>.
"""
from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass

ORDER_PREFIX = "hb"
_RANDOM_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class Plan:
    id: str
    coins: int
    price_irr: int

    @property
    def description(self) -> str:
        return f"{self.id}: {self.coins} coins"


PLANS: dict[str, Plan] = {
    "starter": Plan(id="starter", coins=10, price_irr=99_000),
    "lite": Plan(id="lite", coins=50, price_irr=249_000),
    "standard": Plan(id="standard", coins=120, price_irr=499_000),
    "pro": Plan(id="pro", coins=300, price_irr=990_000),
    "mega": Plan(id="mega", coins=700, price_irr=1_990_000),
}


def list_plans() -> list[Plan]:
    return sorted(PLANS.values(), key=lambda p: p.price_irr)


def get_plan(plan_id: str | None) -> Plan | None:
    if not plan_id:
        return None
    return PLANS.get(plan_id)


def is_valid_plan(plan_id: str | None) -> bool:
    return get_plan(plan_id) is not None


def encode_order_id(plan_id: str, now_ms: int | None = None) -> str:
    if not is_valid_plan(plan_id):
        raise ValueError(f"unknown plan: {plan_id}")
    ts = now_ms if now_ms is not None else int(time.time() * 1000)
    rand = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(6))
    return f"{ORDER_PREFIX}_{plan_id}_{ts}_{rand}"


def decode_plan_id(order_id: str | None = None, description: str | None = None) -> str | None:
    """
    Plan id from an order id; falls back to the first known plan id
    found inside the gateway's free-text description.
    """
    if order_id and order_id.startswith(f"{ORDER_PREFIX}_"):
        parts = order_id.split("_")
        if len(parts) >= 3 and is_valid_plan(parts[1]):
            return parts[1]
    if description:
        desc = description.lower()
        for plan_id in PLANS:
            if plan_id in desc:
                return plan_id
    return None
