from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from historybox.db.base import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    # Opaque subject id from the identity provider (SuperTokens / Auth0 `sub`)
    external_id = Column(String, unique=True, nullable=False, index=True)
    phone_number = Column(String, nullable=True)
    # Only mutated through CoinLedger (conditional UPDATE), never read-modify-write
    coins = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
