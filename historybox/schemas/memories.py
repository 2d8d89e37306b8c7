from datetime import datetime

from pydantic import Field

from historybox.schemas.base import CamelModel


class MemoryIn(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    caption: str | None = None
    image_url: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str | None = None
    date: datetime | None = None


class MemoryUpdateIn(CamelModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    caption: str | None = None
    image_url: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    address: str | None = None
    date: datetime | None = None


class MemoryOut(CamelModel):
    id: int
    title: str
    description: str | None = None
    caption: str | None = None
    image_url: str
    latitude: float
    longitude: float
    address: str | None = None
    memory_date: datetime | None = None
    region_id: int
    created_at: datetime


class MemoryCreatedOut(CamelModel):
    success: bool = True
    memory: MemoryOut
    message: str = "Memory saved successfully"
    coins: int


class MemoryDetailOut(CamelModel):
    memory: MemoryOut


class MemoryListOut(CamelModel):
    memories: list[MemoryOut]
