from datetime import datetime

from pydantic import Field

from historybox.schemas.base import CamelModel


class RegionOut(CamelModel):
    id: int
    hash: str
    post_count: int


class RegionPostOut(CamelModel):
    id: int
    image_url: str
    caption: str | None = None
    description: str | None = None
    title: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    created_at: datetime
    blurred: bool = False


class RegionPostsOut(CamelModel):
    region: RegionOut
    unlocked: bool
    unlocked_count: int = 0
    posts: list[RegionPostOut]
    can_unlock: bool


class RegionSampleOut(CamelModel):
    post_id: int
    latitude: float
    longitude: float
    image_url: str


class RegionSummaryOut(CamelModel):
    id: int
    geohash: str
    post_count: int
    sample: RegionSampleOut


class RegionListOut(CamelModel):
    regions: list[RegionSummaryOut]


class UnlockIn(CamelModel):
    region_hash: str | None = Field(None, max_length=12)


class UnlockOut(CamelModel):
    ok: bool = True
    unlocked_count: int
    coins: int
