from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from historybox.db.base import Base


class RegionUnlock(Base):
    __tablename__ = "region_unlocks"
    __table_args__ = (
        UniqueConstraint("user_id", "region_id", name="uq_region_unlock_user_region"),
        CheckConstraint("unlocked_count >= 0", name="ck_region_unlocks_count_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    region_id = Column(Integer, ForeignKey("regions.id"), nullable=False, index=True)
    unlocked_count = Column(Integer, nullable=False, default=0)  # only grows
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
