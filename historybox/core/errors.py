"""
Domain errors. Services raise these; main.py renders them as {"error": ...}
with the status code carried by the class.
"""
from typing import Any


class HistoryBoxError(Exception):
    status_code = 500

    def __init__(self, message: str, detail: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class InvalidInput(HistoryBoxError):
    status_code = 400


class Unauthenticated(HistoryBoxError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated", detail: dict[str, Any] | None = None):
        super().__init__(message, detail)


class InsufficientFunds(HistoryBoxError):
    """Debit exceeds the current coin balance. Nothing was mutated."""

    status_code = 402

    def __init__(self, balance: int, required: int):
        super().__init__("Not enough coins", {"coins": balance, "required": required})
        self.balance = balance
        self.required = required


class NotFound(HistoryBoxError):
    status_code = 404


class AlreadyProcessed(HistoryBoxError):
    status_code = 409


class UpstreamUnavailable(HistoryBoxError):
    """External provider unreachable, timed out or answered non-2xx. detail holds the raw payload."""

    status_code = 502


class RateLimited(HistoryBoxError):
    status_code = 429
