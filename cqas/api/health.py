"""Health and metrics endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cqas.database import get_db
from cqas.models import Behavior, Call, Feedback

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/metrics")
async def metrics(db: Annotated[AsyncSession, Depends(get_db)]):
    """Row counts for a quick look at pipeline progress."""
    calls = await db.scalar(select(func.count()).select_from(Call))
    active = await db.scalar(
        select(func.count()).select_from(Behavior).where(Behavior.is_active.is_(True))
    )
    generated = await db.scalar(
        select(func.count()).select_from(Feedback).where(Feedback.generated_at.is_not(None))
    )
    return {
        "service": "cqas",
        "version": "0.1.0",
        "calls": calls or 0,
        "active_behaviors": active or 0,
        "feedback_generated": generated or 0,
    }
