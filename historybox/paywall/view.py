"""
Execution side of the paywall: load a region's posts and shape them according to decide_access.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from historybox.models.memory import Memory
from historybox.models.region import Region
from historybox.models.user import User
from historybox.paywall.access import decide_access, to_teaser
from historybox.paywall.models import GateContext, PostView
from historybox.services.regions.service import RegionService
from historybox.services.unlocks.service import UnlockService

logger = logging.getLogger(__name__)


@dataclass
class RegionView:
    region: Region
    unlocked: bool
    can_unlock: bool
    unlocked_count: int
    posts: list[PostView]


def _to_post_view(memory: Memory) -> PostView:
    return PostView(
        id=memory.id,
        image_url=memory.image_url,
        caption=memory.caption,
        description=memory.description,
        title=memory.title,
        latitude=memory.latitude,
        longitude=memory.longitude,
        created_at=memory.created_at,
        blurred=False,
    )


def get_region_view(db: Session, region_hash: str, viewer: User | None = None) -> RegionView:
    """
    Region posts newest-first: full for viewers with unlock progress, teasers otherwise.
    viewer=None is an anonymous request.
    """
    region = RegionService(db).get_by_hash(region_hash)

    unlocked_count = 0
    if viewer is not None:
        unlocked_count = UnlockService(db).get_unlocked_count(viewer.id, region.id)

    decision = decide_access(GateContext(
        authenticated=viewer is not None,
        unlocked_count=unlocked_count,
        post_count=region.post_count,
    ))

    memories = db.execute(
        select(Memory)
        .where(Memory.region_id == region.id)
        .order_by(Memory.created_at.desc(), Memory.id.desc())
        .limit(decision.visible_limit)
    ).scalars().all()

    posts = [_to_post_view(m) for m in memories]
    if not decision.unlocked:
        posts = [to_teaser(p) for p in posts]

    return RegionView(
        region=region,
        unlocked=decision.unlocked,
        can_unlock=decision.can_unlock,
        unlocked_count=unlocked_count,
        posts=posts,
    )
