from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from historybox.schemas.base import CamelModel


class PlanOut(CamelModel):
    id: str
    coins: int
    price_irr: int


class PlanListOut(CamelModel):
    plans: list[PlanOut]
    currency: str


class CheckoutIn(CamelModel):
    plan_id: str | None = None


class CheckoutOut(BaseModel):
    url: str
    order_id: str


class VerifyOut(BaseModel):
    """Gateway field names stay snake_case; our own fields are camelCase."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    transaction_id: str
    order_id: str | None = None
    amount: int | None = None
    currency: str | None = None
    plan_id: str | None = Field(None, alias="planId")
    credited: bool = False
    already_processed: bool = Field(False, alias="alreadyProcessed")
    coins_added: int = Field(0, alias="coinsAdded")
    new_balance: int | None = Field(None, alias="newBalance")
    verify: Any = None
