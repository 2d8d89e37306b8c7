"""
Unlock audit: record_unlock is called once the unlock transaction has committed.
"""
from __future__ import annotations

import logging
from typing import Literal

from historybox.utils.metrics import region_unlocks_total

logger = logging.getLogger(__name__)

UnlockKind = Literal["first", "extend"]


def record_unlock(
    user_id: str,
    region_id: int,
    kind: UnlockKind,
    *,
    unlocked_count: int,
    coins_spent: int,
    new_balance: int,
) -> None:
    region_unlocks_total.labels(kind=kind).inc()
    logger.info(
        "region_unlocked",
        extra={
            "user_id": user_id,
            "region_id": region_id,
            "unlocked_count": unlocked_count,
            "amount": coins_spent,
            "new_balance": new_balance,
        },
    )
