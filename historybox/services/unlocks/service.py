"""
UnlockService: paid, batch-wise reveal of a region's posts.

State per (user, region): Locked (no row) -> Partially Unlocked -> Fully Unlocked.
unlocked_count only grows and is capped at the region's post_count.
Debit and count update happen in one transaction: the caller commits,
any exception leaves both untouched after rollback.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from historybox.core.errors import NotFound
from historybox.models.region import Region
from historybox.models.region_unlock import RegionUnlock
from historybox.models.user import User
from historybox.paywall.config import get_unlock_batch_size, get_unlock_cost_coins
from historybox.services.coins.ledger import CoinLedger

logger = logging.getLogger(__name__)


@dataclass
class UnlockResult:
    region_id: int
    unlocked_count: int
    coins: int
    first_unlock: bool
    coins_spent: int


class UnlockService:
    def __init__(self, db: Session):
        self.db = db
        self.ledger = CoinLedger(db)

    def get_unlocked_count(self, user_id: str, region_id: int) -> int:
        record = (
            self.db.query(RegionUnlock)
            .filter(RegionUnlock.user_id == user_id, RegionUnlock.region_id == region_id)
            .one_or_none()
        )
        return record.unlocked_count if record else 0

    def unlock(self, user_id: str, region_id: int) -> UnlockResult:
        """
        Spend unlock_cost coins to reveal up to unlock_batch_size more posts.
        Raises InsufficientFunds (nothing mutated) or NotFound.
        """
        cost = get_unlock_cost_coins()
        batch = get_unlock_batch_size()

        # Row lock on the user serializes concurrent unlocks from the same account
        # (two tabs): the unlock row read-modify-write below cannot interleave.
        user = (
            self.db.query(User)
            .filter(User.id == user_id)
            .with_for_update()
            .one_or_none()
        )
        if not user:
            raise NotFound("User not found", {"user_id": user_id})

        region = self.db.query(Region).filter(Region.id == region_id).one_or_none()
        if not region:
            raise NotFound("Region not found", {"region_id": region_id})

        new_balance = self.ledger.debit(user.id, cost, reason="region_unlock")

        record = (
            self.db.query(RegionUnlock)
            .filter(RegionUnlock.user_id == user.id, RegionUnlock.region_id == region.id)
            .with_for_update()
            .one_or_none()
        )
        first_unlock = record is None
        if first_unlock:
            record = RegionUnlock(
                user_id=user.id,
                region_id=region.id,
                unlocked_count=min(batch, region.post_count),
            )
            self.db.add(record)
        else:
            capped = min(record.unlocked_count + batch, region.post_count)
            # Never move backwards, even if post_count dropped after earlier unlocks
            record.unlocked_count = max(record.unlocked_count, capped)
            self.db.add(record)
        self.db.flush()

        logger.info(
            "region_unlock_applied",
            extra={
                "user_id": user.id,
                "region_id": region.id,
                "unlocked_count": record.unlocked_count,
                "new_balance": new_balance,
            },
        )
        return UnlockResult(
            region_id=region.id,
            unlocked_count=record.unlocked_count,
            coins=new_balance,
            first_unlock=first_unlock,
            coins_spent=cost,
        )
