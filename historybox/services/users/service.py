import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from historybox.core.errors import NotFound
from historybox.models.memory import Memory
from historybox.models.region_unlock import RegionUnlock
from historybox.models.user import User
from historybox.paywall.config import get_signup_bonus_coins

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_external_id(self, external_id: str) -> User | None:
        return self.db.query(User).filter(User.external_id == external_id).one_or_none()

    def require_by_external_id(self, external_id: str) -> User:
        user = self.get_by_external_id(external_id)
        if not user:
            raise NotFound("User not found", {"external_id": external_id})
        return user

    def get_or_create_user(self, external_id: str, phone_number: str | None = None) -> User:
        """
        Lazily create the internal user row for an identity-provider subject.
        Concurrent first requests race on the unique external_id; the loser re-reads.
        """
        user = self.get_by_external_id(external_id)
        if user:
            if phone_number and user.phone_number != phone_number:
                user.phone_number = phone_number
                self.db.add(user)
                self.db.commit()
                self.db.refresh(user)
            return user
        user = User(
            external_id=external_id,
            phone_number=phone_number,
            coins=get_signup_bonus_coins(),
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return self.db.query(User).filter(User.external_id == external_id).one()
        self.db.refresh(user)
        logger.info("user_created", extra={"user_id": user.id, "external_id": external_id})
        return user

    def get_stats(self, user: User) -> dict:
        memories = self.db.execute(
            select(func.count(Memory.id)).where(Memory.user_id == user.id)
        ).scalar_one()
        unlocked_regions = self.db.execute(
            select(func.count(RegionUnlock.id)).where(
                RegionUnlock.user_id == user.id,
                RegionUnlock.unlocked_count > 0,
            )
        ).scalar_one()
        return {
            "coins": user.coins,
            "memories": memories,
            "unlocked_regions": unlocked_regions,
        }
