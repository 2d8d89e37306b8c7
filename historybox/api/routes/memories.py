from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from historybox.api.deps import Identity, get_identity
from historybox.db.session import get_db
from historybox.schemas.memories import (
    MemoryCreatedOut,
    MemoryDetailOut,
    MemoryIn,
    MemoryListOut,
    MemoryOut,
    MemoryUpdateIn,
)
from historybox.services.memories.service import MemoryInput, MemoryService
from historybox.services.users.service import UserService


router = APIRouter(prefix="/memories", tags=["memories"])


@router.post("", response_model=MemoryCreatedOut)
def create_memory(
    body: MemoryIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> MemoryCreatedOut:
    user = UserService(db).get_or_create_user(identity.external_id, identity.phone_number)
    memory, coins = MemoryService(db).create_memory(user, MemoryInput(
        title=body.title,
        image_url=body.image_url,
        latitude=body.latitude,
        longitude=body.longitude,
        description=body.description,
        caption=body.caption,
        address=body.address,
        memory_date=body.date,
    ))
    db.commit()
    db.refresh(memory)
    return MemoryCreatedOut(memory=MemoryOut.model_validate(memory), coins=coins)


@router.get("", response_model=MemoryListOut)
def my_memories(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)) -> MemoryListOut:
    user = UserService(db).get_or_create_user(identity.external_id, identity.phone_number)
    memories = MemoryService(db).list_for_user(user)
    return MemoryListOut(memories=[MemoryOut.model_validate(m) for m in memories])


@router.get("/recent", response_model=MemoryListOut)
def recent_memories(limit: int = Query(20), db: Session = Depends(get_db)) -> MemoryListOut:
    memories = MemoryService(db).list_recent(limit)
    return MemoryListOut(memories=[MemoryOut.model_validate(m) for m in memories])


@router.get("/{memory_id}", response_model=MemoryDetailOut)
def get_memory(memory_id: int, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)) -> MemoryDetailOut:
    user = UserService(db).require_by_external_id(identity.external_id)
    memory = MemoryService(db).get_owned(user, memory_id)
    return MemoryDetailOut(memory=MemoryOut.model_validate(memory))


@router.patch("/{memory_id}", response_model=MemoryDetailOut)
def update_memory(
    memory_id: int,
    body: MemoryUpdateIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> MemoryDetailOut:
    user = UserService(db).require_by_external_id(identity.external_id)
    changes = body.model_dump(exclude_unset=True)
    if "date" in changes:
        changes["memory_date"] = changes.pop("date")
    memory = MemoryService(db).update_memory(user, memory_id, changes)
    db.commit()
    db.refresh(memory)
    return MemoryDetailOut(memory=MemoryOut.model_validate(memory))


@router.delete("/{memory_id}")
def delete_memory(memory_id: int, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    user = UserService(db).require_by_external_id(identity.external_id)
    MemoryService(db).delete_memory(user, memory_id)
    db.commit()
    return {"success": True}
