"""
Decision only: decide_access(ctx) -> GateDecision. Pure, no I/O.
Masking: to_teaser(post) keeps the image, hides caption and most of the description.
"""
from __future__ import annotations

from historybox.paywall.config import (
    get_teaser_description_words,
    get_teaser_post_limit,
    get_unlock_batch_size,
)
from historybox.paywall.models import (
    HIDDEN_PLACEHOLDER,
    LOCKED_CAPTION,
    LOCKED_SUFFIX,
    GateContext,
    GateDecision,
    PostView,
)


def decide_access(ctx: GateContext) -> GateDecision:
    """
    Any unlock progress (unlocked_count >= 1) -> full view of the newest
    max(batch, unlocked_count) posts. Otherwise -> teaser of the newest posts.
    """
    if ctx.authenticated and ctx.unlocked_count >= 1:
        return GateDecision(
            unlocked=True,
            visible_limit=max(get_unlock_batch_size(), ctx.unlocked_count),
            can_unlock=True,
        )
    return GateDecision(
        unlocked=False,
        visible_limit=get_teaser_post_limit(),
        can_unlock=ctx.authenticated,
    )


def truncate_words(text: str, n: int) -> str:
    parts = text.split()
    if len(parts) <= n:
        return text
    return " ".join(parts[:n])


def to_teaser(post: PostView) -> PostView:
    """
    Teaser form: same image, fixed caption, first N words of the description, blurred.
    Always strictly fewer words than the original, so short descriptions never leak in full.
    """
    words = (post.description or "").split()
    limit = min(get_teaser_description_words(), len(words) - 1)
    prefix = truncate_words(" ".join(words), limit) if limit > 0 else HIDDEN_PLACEHOLDER
    return PostView(
        id=post.id,
        image_url=post.image_url,
        caption=LOCKED_CAPTION,
        description=prefix + LOCKED_SUFFIX,
        created_at=post.created_at,
        blurred=True,
    )
