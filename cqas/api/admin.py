"""Admin endpoints - behaviors and call registration."""

from datetime import datetime, timezone
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from cqas.api.dependencies import to_http_exception
from cqas.database import get_db
from cqas.errors import PersistenceError
from cqas.schemas.admin import (
    BehaviorOut,
    CallOut,
    CreateBehaviorRequest,
    CreateCallRequest,
    UpdateBehaviorRequest,
)
from cqas.storage.repositories import (
    create_behavior,
    create_call,
    create_feedback_placeholder,
    get_behavior,
    list_behaviors,
)

router = APIRouter()


def _behavior_out(behavior) -> BehaviorOut:
    return BehaviorOut(
        behavior_id=str(behavior.behavior_id),
        name=behavior.name,
        description=behavior.description,
        prompt=behavior.prompt,
        is_active=behavior.is_active,
        position=behavior.position,
        created_at=behavior.created_at,
        updated_at=behavior.updated_at,
    )


@router.get("/behaviors", response_model=list[BehaviorOut])
async def get_behaviors(db: Annotated[AsyncSession, Depends(get_db)]):
    """List all behaviors in evaluation order."""
    return [_behavior_out(b) for b in await list_behaviors(db)]


@router.post("/behaviors", response_model=BehaviorOut, status_code=status.HTTP_201_CREATED)
async def add_behavior(
    body: CreateBehaviorRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a behavior. New behaviors are evaluated after existing ones."""
    behavior = await create_behavior(
        db,
        name=body.name,
        prompt=body.prompt,
        description=body.description,
        is_active=body.is_active,
    )
    await db.commit()
    await db.refresh(behavior)
    return _behavior_out(behavior)


@router.patch("/behaviors/{behavior_id}", response_model=BehaviorOut)
async def update_behavior(
    behavior_id: UUID,
    body: UpdateBehaviorRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Edit or (de)activate a behavior.
    Feedback already generated keeps its verdicts.
    """
    behavior = await get_behavior(db, str(behavior_id))
    if not behavior:
        raise HTTPException(status_code=404, detail="Behavior not found")

    changes = body.model_dump(exclude_unset=True)
    for field in ("name", "prompt", "is_active"):
        if field in changes and changes[field] is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{field} cannot be null",
            )
    for field, value in changes.items():
        setattr(behavior, field, value)
    behavior.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(behavior)
    return _behavior_out(behavior)


@router.post("/calls", response_model=CallOut, status_code=status.HTTP_201_CREATED)
async def register_call(
    body: CreateCallRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Register a transcribed call, optionally with an empty feedback row to fill later."""
    transcription = body.transcription
    if isinstance(transcription, list):
        transcription = [s.model_dump() for s in transcription]

    call = await create_call(db, title=body.title, transcription=transcription)
    if body.create_feedback_placeholder:
        try:
            await create_feedback_placeholder(db, str(call.call_id))
        except PersistenceError as e:
            raise to_http_exception(e) from e
    await db.commit()
    await db.refresh(call)
    return CallOut(
        call_id=str(call.call_id),
        title=call.title,
        transcription=call.transcription,
        created_at=call.created_at,
    )
