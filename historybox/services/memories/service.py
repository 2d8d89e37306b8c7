import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from historybox.core.errors import InvalidInput, NotFound
from historybox.models.memory import Memory
from historybox.models.user import User
from historybox.paywall.config import get_memory_cost_coins
from historybox.services.coins.ledger import CoinLedger
from historybox.services.regions.service import RegionService

logger = logging.getLogger(__name__)

RECENT_DEFAULT_LIMIT = 20
RECENT_MAX_LIMIT = 50


@dataclass
class MemoryInput:
    title: str
    image_url: str
    latitude: float
    longitude: float
    description: str | None = None
    caption: str | None = None
    address: str | None = None
    memory_date: datetime | None = None


class MemoryService:
    """
    Memory CRUD with region bookkeeping. Every write that moves a memory in or out
    of a region adjusts that region's post_count in the same transaction.
    """

    def __init__(self, db: Session):
        self.db = db
        self.regions = RegionService(db)
        self.ledger = CoinLedger(db)

    def create_memory(self, user: User, data: MemoryInput) -> tuple[Memory, int]:
        """Create a memory, charging memory_cost coins. Returns (memory, new coin balance)."""
        if not data.title or not data.image_url:
            raise InvalidInput("Missing required fields: title, imageUrl, latitude, longitude")
        # Validate coordinates before any write
        self.regions.geohash_for(data.latitude, data.longitude)

        cost = get_memory_cost_coins()
        if cost > 0:
            new_balance = self.ledger.debit(user.id, cost, reason="memory_create")
        else:
            new_balance = self.ledger.get_balance(user.id)

        region = self.regions.resolve_region(data.latitude, data.longitude)

        memory = Memory(
            user_id=user.id,
            region_id=region.id,
            title=data.title,
            description=data.description or None,
            caption=data.caption or data.description or data.title,
            image_url=data.image_url,
            latitude=data.latitude,
            longitude=data.longitude,
            address=data.address or None,
            memory_date=data.memory_date,
        )
        self.db.add(memory)
        self.db.flush()
        self.regions.adjust_post_count(region.id, +1)

        logger.info(
            "memory_created",
            extra={
                "memory_id": memory.id,
                "user_id": user.id,
                "region_id": region.id,
                "geohash": region.geohash,
                "coins": new_balance,
            },
        )
        return memory, new_balance

    def get_owned(self, user: User, memory_id: int) -> Memory:
        """Only the owner may see/mutate through this path; everyone else gets NotFound."""
        memory = (
            self.db.query(Memory)
            .filter(Memory.id == memory_id, Memory.user_id == user.id)
            .one_or_none()
        )
        if not memory:
            raise NotFound("Memory not found", {"memory_id": memory_id})
        return memory

    def update_memory(self, user: User, memory_id: int, changes: dict) -> Memory:
        """
        Partial update. If latitude/longitude change, the region is re-derived and
        post_count moves from the old region to the new one in the same transaction.
        """
        memory = self.get_owned(user, memory_id)

        for key in ("title", "description", "caption", "image_url", "address", "memory_date"):
            if key in changes and changes[key] is not None:
                setattr(memory, key, changes[key])

        new_lat = changes.get("latitude")
        new_lon = changes.get("longitude")
        lat_changed = new_lat is not None and new_lat != memory.latitude
        lon_changed = new_lon is not None and new_lon != memory.longitude
        if lat_changed or lon_changed:
            lat = new_lat if new_lat is not None else memory.latitude
            lon = new_lon if new_lon is not None else memory.longitude
            region = self.regions.resolve_region(lat, lon)
            old_region_id = memory.region_id
            memory.latitude = lat
            memory.longitude = lon
            if region.id != old_region_id:
                memory.region_id = region.id
                self.regions.adjust_post_count(old_region_id, -1)
                self.regions.adjust_post_count(region.id, +1)
                logger.info(
                    "memory_region_changed",
                    extra={"memory_id": memory.id, "region_id": region.id, "geohash": region.geohash},
                )

        self.db.add(memory)
        self.db.flush()
        return memory

    def delete_memory(self, user: User, memory_id: int) -> None:
        memory = self.get_owned(user, memory_id)
        region_id = memory.region_id
        self.db.delete(memory)
        self.db.flush()
        self.regions.adjust_post_count(region_id, -1)
        logger.info("memory_deleted", extra={"memory_id": memory_id, "user_id": user.id, "region_id": region_id})

    def list_for_user(self, user: User) -> list[Memory]:
        return list(self.db.execute(
            select(Memory)
            .where(Memory.user_id == user.id)
            .order_by(Memory.created_at.desc(), Memory.id.desc())
        ).scalars())

    def list_recent(self, limit: int | None = None) -> list[Memory]:
        limit = RECENT_DEFAULT_LIMIT if limit is None else min(RECENT_MAX_LIMIT, max(1, int(limit)))
        return list(self.db.execute(
            select(Memory)
            .order_by(Memory.created_at.desc(), Memory.id.desc())
            .limit(limit)
        ).scalars())
