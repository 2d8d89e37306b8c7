"""
Region: geohash cell that groups memories. Created on first memory in the cell, never deleted.
"""
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from historybox.db.base import Base


class Region(Base):
    __tablename__ = "regions"
    __table_args__ = (CheckConstraint("post_count >= 0", name="ck_regions_post_count_non_negative"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    geohash = Column(String(12), unique=True, nullable=False, index=True)
    alias_hash = Column(String(12), unique=True, nullable=True)  # legacy `hash` column of old deployments
    # Running total of memories in this region; adjusted only via RegionService.adjust_post_count
    post_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    @property
    def hash(self) -> str:
        return self.alias_hash or self.geohash
