"""
DTO paywall: GateContext (input of decide_access), GateDecision, PostView.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


LOCKED_CAPTION = "Locked"
LOCKED_SUFFIX = " …locked"
HIDDEN_PLACEHOLDER = "Hidden memory"


class GateContext(BaseModel):
    """Input of decide_access: who is asking and how far they unlocked this region."""

    authenticated: bool = False
    unlocked_count: int = 0
    post_count: int = 0

    model_config = {"frozen": True}


class GateDecision(BaseModel):
    """Result of decide_access: how many newest posts to load and whether to mask them."""

    unlocked: bool
    visible_limit: int = Field(..., description="Newest-first posts to return")
    can_unlock: bool = Field(..., description="Authenticated viewers may unlock; balance is checked at unlock time")

    model_config = {"frozen": True}


class PostView(BaseModel):
    """One post as returned by the region view, full or teaser."""

    id: int
    image_url: str
    caption: str | None = None
    description: str | None = None
    title: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    created_at: datetime
    blurred: bool = False

    model_config = {"frozen": True}
