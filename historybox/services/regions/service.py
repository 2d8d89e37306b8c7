import logging

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from historybox.core.errors import InvalidInput, NotFound
from historybox.geo import geohash
from historybox.models.memory import Memory
from historybox.models.region import Region
from historybox.paywall.config import get_region_precision
from historybox.utils.metrics import regions_created_total

logger = logging.getLogger(__name__)


class RegionService:
    """Region registry: geohash cell -> Region row with a running post count."""

    def __init__(self, db: Session):
        self.db = db

    def geohash_for(self, latitude: float, longitude: float) -> str:
        return geohash.encode(latitude, longitude, get_region_precision())

    def resolve_region(self, latitude: float, longitude: float) -> Region:
        """
        Get-or-create the region for a coordinate.
        Insert is ON CONFLICT DO NOTHING on the unique geohash, so two concurrent
        first-time creators end up reading the same row.
        """
        cell = self.geohash_for(latitude, longitude)
        region = self.get_by_geohash(cell)
        if region:
            return region

        insert = pg_insert if self.db.get_bind().dialect.name == "postgresql" else sqlite_insert
        result = self.db.execute(
            insert(Region)
            .values(geohash=cell, post_count=0)
            .on_conflict_do_nothing(index_elements=["geohash"])
        )
        if result.rowcount:
            regions_created_total.inc()
            logger.info("region_created", extra={"geohash": cell})
        region = self.get_by_geohash(cell)
        if region is None:
            raise NotFound("Region not found", {"geohash": cell})
        return region

    def get_by_geohash(self, cell: str) -> Region | None:
        return self.db.query(Region).filter(Region.geohash == cell).one_or_none()

    def get_by_hash(self, region_hash: str) -> Region:
        if not region_hash:
            raise InvalidInput("Region hash required")
        region = (
            self.db.query(Region)
            .filter(or_(Region.geohash == region_hash, Region.alias_hash == region_hash))
            .first()
        )
        if not region:
            raise NotFound("Region not found", {"geohash": region_hash})
        return region

    def get_by_id(self, region_id: int) -> Region:
        region = self.db.query(Region).filter(Region.id == region_id).one_or_none()
        if not region:
            raise NotFound("Region not found", {"region_id": region_id})
        return region

    def adjust_post_count(self, region_id: int, delta: int) -> int:
        """
        Atomic post_count += delta, clamped at zero. Returns the new count.
        Single UPDATE, no read-then-write, so concurrent memories serialize per region.
        """
        new_value = Region.post_count + delta
        new_count = self.db.execute(
            update(Region)
            .where(Region.id == region_id)
            .values(post_count=case((new_value < 0, 0), else_=new_value))
            .returning(Region.post_count)
            .execution_options(synchronize_session="fetch")
        ).scalar_one_or_none()
        if new_count is None:
            raise NotFound("Region not found", {"region_id": region_id})
        self.db.flush()
        return new_count

    def list_regions(self) -> list[dict]:
        """Non-empty regions by post count, each with its newest post as a map sample."""
        newest = (
            select(
                Memory.region_id,
                Memory.id.label("post_id"),
                Memory.latitude,
                Memory.longitude,
                Memory.image_url,
                func.row_number()
                .over(
                    partition_by=Memory.region_id,
                    order_by=(Memory.created_at.desc(), Memory.id.desc()),
                )
                .label("rn"),
            )
            .subquery()
        )
        rows = self.db.execute(
            select(Region.id, Region.geohash, Region.post_count, newest)
            .join(newest, newest.c.region_id == Region.id)
            .where(Region.post_count > 0, newest.c.rn == 1)
            .order_by(Region.post_count.desc(), Region.id)
        ).mappings()
        return [
            {
                "id": row["id"],
                "geohash": row["geohash"],
                "post_count": row["post_count"],
                "sample": {
                    "post_id": row["post_id"],
                    "latitude": row["latitude"],
                    "longitude": row["longitude"],
                    "image_url": row["image_url"],
                },
            }
            for row in rows
        ]
