from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from historybox.api.deps import Identity, get_identity_optional
from historybox.db.session import get_db
from historybox.schemas.users import UserEnvelopeOut, UserOut, UserStatsOut
from historybox.services.users.service import UserService


router = APIRouter(prefix="/user", tags=["user"])


@router.get("", response_model=UserEnvelopeOut)
def current_user(
    identity: Identity | None = Depends(get_identity_optional),
    db: Session = Depends(get_db),
) -> UserEnvelopeOut:
    if identity is None:
        return UserEnvelopeOut(user=None)
    user = UserService(db).get_by_external_id(identity.external_id)
    if user is None:
        return UserEnvelopeOut(user=None)
    return UserEnvelopeOut(user=UserOut(id=user.id, external_id=user.external_id, coins=user.coins))


@router.get("/stats", response_model=UserStatsOut)
def user_stats(
    identity: Identity | None = Depends(get_identity_optional),
    db: Session = Depends(get_db),
) -> UserStatsOut:
    """Anonymous callers and unknown users get zeros, not an error (header badge polls this)."""
    service = UserService(db)
    user = service.get_by_external_id(identity.external_id) if identity else None
    if user is None:
        return UserStatsOut(coins=0, memories=0, unlocked_regions=0)
    return UserStatsOut(**service.get_stats(user))
