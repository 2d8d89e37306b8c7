"""
Shared fixtures for DB-backed tests: in-memory SQLite with the full schema.
"""
from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import historybox.models  # noqa: F401  (registers tables on Base.metadata)
from historybox.db.base import Base
from historybox.models.memory import Memory
from historybox.models.region import Region
from historybox.models.user import User

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def new_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)()


def add_user(db, external_id="ext-1", coins=0) -> User:
    user = User(external_id=external_id, coins=coins)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def add_region(db, geohash="tdr1x", post_count=0) -> Region:
    region = Region(geohash=geohash, post_count=post_count)
    db.add(region)
    db.commit()
    db.refresh(region)
    return region


def add_memories(db, region: Region, owner: User, count: int, description="a b c d e f g h") -> list[Memory]:
    """count memories in region; memory i is created i minutes after BASE_TIME (last is newest)."""
    memories = []
    for i in range(count):
        memory = Memory(
            user_id=owner.id,
            region_id=region.id,
            title=f"memory {i}",
            description=description,
            caption=f"caption {i}",
            image_url=f"https://img.example/{i}.jpg",
            latitude=12.97,
            longitude=77.59,
            created_at=BASE_TIME + timedelta(minutes=i),
        )
        db.add(memory)
        memories.append(memory)
    region.post_count = count
    db.add(region)
    db.commit()
    return memories
