"""
CoinLedger: the only writer of User.coins.

Every mutation is a single conditional UPDATE, so concurrent debits on one
user serialize in the database and the balance can never go below zero.
Operations flush but do not commit: the caller owns the transaction, which
lets unlock / memory creation combine a debit with other writes atomically.
"""
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from historybox.core.errors import InsufficientFunds, InvalidInput, NotFound
from historybox.models.user import User
from historybox.utils.metrics import coin_operations_total, insufficient_funds_total

logger = logging.getLogger(__name__)


class CoinLedger:
    def __init__(self, db: Session):
        self.db = db

    def get_balance(self, user_id: str) -> int:
        balance = self.db.execute(select(User.coins).where(User.id == user_id)).scalar_one_or_none()
        if balance is None:
            raise NotFound("User not found", {"user_id": user_id})
        return balance

    def credit(self, user_id: str, amount: int, reason: str = "purchase") -> int:
        """Increase balance by amount (> 0). Returns the new balance."""
        if amount <= 0:
            raise InvalidInput("credit amount must be positive", {"amount": amount})
        new_balance = self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(coins=User.coins + amount)
            .returning(User.coins)
            .execution_options(synchronize_session="fetch")
        ).scalar_one_or_none()
        if new_balance is None:
            raise NotFound("User not found", {"user_id": user_id})
        self.db.flush()
        coin_operations_total.labels(operation="CREDIT", reason=reason).inc()
        logger.info(
            "coins_credited",
            extra={"user_id": user_id, "amount": amount, "new_balance": new_balance},
        )
        return new_balance

    def debit(self, user_id: str, amount: int, reason: str = "spend") -> int:
        """
        Decrease balance by amount (> 0) iff balance >= amount. Returns the new balance.
        Raises InsufficientFunds without mutating anything otherwise.
        """
        if amount <= 0:
            raise InvalidInput("debit amount must be positive", {"amount": amount})
        new_balance = self.db.execute(
            update(User)
            .where(User.id == user_id, User.coins >= amount)
            .values(coins=User.coins - amount)
            .returning(User.coins)
            .execution_options(synchronize_session="fetch")
        ).scalar_one_or_none()
        if new_balance is None:
            # Either no such user or not enough coins; tell them apart for the caller
            balance = self.get_balance(user_id)
            insufficient_funds_total.labels(reason=reason).inc()
            logger.info(
                "coins_insufficient",
                extra={"user_id": user_id, "amount": amount, "coins": balance},
            )
            raise InsufficientFunds(balance=balance, required=amount)
        self.db.flush()
        coin_operations_total.labels(operation="DEBIT", reason=reason).inc()
        logger.info(
            "coins_debited",
            extra={"user_id": user_id, "amount": amount, "new_balance": new_balance},
        )
        return new_balance
