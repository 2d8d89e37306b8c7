from historybox.schemas.base import CamelModel


class UserOut(CamelModel):
    id: str
    external_id: str
    coins: int


class UserEnvelopeOut(CamelModel):
    user: UserOut | None = None


class UserStatsOut(CamelModel):
    coins: int
    memories: int
    unlocked_regions: int
