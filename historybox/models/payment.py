"""
CoinPayment: gateway transactions that were credited to a user.
transaction_id is unique: a row here means the coins were already granted.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, Text

from historybox.db.base import Base


class CoinPayment(Base):
    __tablename__ = "coin_payments"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    transaction_id = Column(String, unique=True, nullable=False)
    user_id = Column(String, nullable=False, index=True)
    plan_id = Column(String, nullable=False)          # starter / lite / standard / pro / mega
    coins_granted = Column(Integer, nullable=False)
    order_id = Column(String, nullable=True)
    amount = Column(Integer, nullable=True)           # as reported by the gateway
    currency = Column(String, nullable=True)
    balance_after = Column(Integer, nullable=True)
    payload = Column(Text, nullable=False, default="{}")  # raw verify payload (JSON)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
