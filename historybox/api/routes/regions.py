from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from historybox.api.deps import Identity, get_identity, get_identity_optional
from historybox.core.errors import InvalidInput
from historybox.db.session import get_db
from historybox.paywall import record_unlock
from historybox.paywall.view import get_region_view
from historybox.schemas.regions import (
    RegionListOut,
    RegionOut,
    RegionPostOut,
    RegionPostsOut,
    UnlockIn,
    UnlockOut,
)
from historybox.services.regions.service import RegionService
from historybox.services.unlocks.service import UnlockService
from historybox.services.users.service import UserService


router = APIRouter(prefix="/regions", tags=["regions"])


@router.get("", response_model=RegionListOut)
def list_regions(db: Session = Depends(get_db)) -> RegionListOut:
    return RegionListOut(regions=RegionService(db).list_regions())


@router.get("/{region_hash}/posts", response_model=RegionPostsOut)
def region_posts(
    region_hash: str,
    identity: Identity | None = Depends(get_identity_optional),
    db: Session = Depends(get_db),
) -> RegionPostsOut:
    """Teaser view without a session; full view once the viewer unlocked the region."""
    viewer = UserService(db).get_by_external_id(identity.external_id) if identity else None
    view = get_region_view(db, region_hash, viewer)
    # Any valid session may attempt an unlock; balance is checked at unlock time
    can_unlock = view.can_unlock or identity is not None
    return RegionPostsOut(
        region=RegionOut(id=view.region.id, hash=view.region.hash, post_count=view.region.post_count),
        unlocked=view.unlocked,
        unlocked_count=view.unlocked_count,
        posts=[RegionPostOut(**p.model_dump()) for p in view.posts],
        can_unlock=can_unlock,
    )


@router.post("/unlock", response_model=UnlockOut)
def unlock_region(
    body: UnlockIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> UnlockOut:
    if not body.region_hash:
        raise InvalidInput("regionHash required")
    user = UserService(db).require_by_external_id(identity.external_id)
    region = RegionService(db).get_by_hash(body.region_hash)

    result = UnlockService(db).unlock(user.id, region.id)
    db.commit()

    record_unlock(
        user.id,
        region.id,
        "first" if result.first_unlock else "extend",
        unlocked_count=result.unlocked_count,
        coins_spent=result.coins_spent,
        new_balance=result.coins,
    )
    return UnlockOut(ok=True, unlocked_count=result.unlocked_count, coins=result.coins)
