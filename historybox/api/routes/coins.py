import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from historybox.api.deps import (
    Identity,
    get_client_ip,
    get_identity_optional,
    get_payment_gateway,
    get_redis,
)
from historybox.core.config import settings
from historybox.core.errors import UpstreamUnavailable
from historybox.db.session import get_db
from historybox.schemas.coins import CheckoutIn, CheckoutOut, PlanListOut, PlanOut, VerifyOut
from historybox.services.payments.plans import list_plans
from historybox.services.payments.service import PaymentService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coins", tags=["coins"])


@router.get("/plans", response_model=PlanListOut)
def plans() -> PlanListOut:
    return PlanListOut(
        plans=[PlanOut(id=p.id, coins=p.coins, price_irr=p.price_irr) for p in list_plans()],
        currency=settings.pay_currency,
    )


@router.post("/checkout", response_model=CheckoutOut)
def checkout(
    request: Request,
    body: CheckoutIn,
    identity: Identity | None = Depends(get_identity_optional),
    gateway=Depends(get_payment_gateway),
    redis_client=Depends(get_redis),
    db: Session = Depends(get_db),
) -> CheckoutOut:
    buyer_key = identity.external_id if identity else get_client_ip(request)
    result = PaymentService(db, gateway, redis_client).create_checkout(body.plan_id, buyer_key)
    return CheckoutOut(url=result.url, order_id=result.order_id)


@router.post("/verify/{transaction_id}", response_model=VerifyOut)
def verify(
    transaction_id: str,
    identity: Identity | None = Depends(get_identity_optional),
    gateway=Depends(get_payment_gateway),
    db: Session = Depends(get_db),
) -> VerifyOut:
    service = PaymentService(db, gateway)
    try:
        result = service.verify_and_credit(
            transaction_id,
            identity.external_id if identity else None,
        )
    except UpstreamUnavailable as e:
        logger.error(
            "payment_verify_upstream_error",
            extra={"transaction_id": transaction_id, "error": e.message, "payload": e.detail},
        )
        raise UpstreamUnavailable("Payment could not be confirmed", {"transaction_id": transaction_id})
    db.commit()
    return VerifyOut(
        status=result.status,
        transaction_id=result.transaction_id,
        order_id=result.order_id,
        amount=result.amount,
        currency=result.currency,
        plan_id=result.plan_id,
        credited=result.credited,
        already_processed=result.already_processed,
        coins_added=result.coins_added,
        new_balance=result.new_balance,
        verify=result.verify,
    )
