"""Repository functions for calls, behaviors, feedback."""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cqas.errors import PersistenceError
from cqas.models import Behavior, Call, Feedback
from cqas.schemas.analysis import Verdict

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def get_call(db: AsyncSession, call_id: str) -> Call | None:
    """Get call by ID."""
    result = await db.execute(select(Call).where(Call.call_id == call_id))
    return result.scalar_one_or_none()


async def create_call(
    db: AsyncSession,
    title: str | None,
    transcription: Any,
) -> Call:
    """Register a call with the transcript produced upstream."""
    call = Call(
        call_id=str(uuid4()),
        title=title,
        transcription=transcription,
        created_at=_now(),
    )
    db.add(call)
    await db.flush()
    return call


async def get_active_behaviors(db: AsyncSession) -> list[Behavior]:
    """Active behaviors in insertion order."""
    result = await db.execute(
        select(Behavior)
        .where(Behavior.is_active.is_(True))
        .order_by(Behavior.position, Behavior.created_at)
    )
    return list(result.scalars().all())


async def list_behaviors(db: AsyncSession) -> list[Behavior]:
    """All behaviors, active or not, in insertion order."""
    result = await db.execute(select(Behavior).order_by(Behavior.position, Behavior.created_at))
    return list(result.scalars().all())


async def get_behavior(db: AsyncSession, behavior_id: str) -> Behavior | None:
    result = await db.execute(select(Behavior).where(Behavior.behavior_id == behavior_id))
    return result.scalar_one_or_none()


async def create_behavior(
    db: AsyncSession,
    name: str,
    prompt: str,
    description: str | None = None,
    is_active: bool = True,
) -> Behavior:
    """Create a behavior at the end of the evaluation order."""
    result = await db.execute(select(func.max(Behavior.position)))
    last_position = result.scalar_one_or_none()
    now = _now()
    behavior = Behavior(
        behavior_id=str(uuid4()),
        name=name,
        description=description,
        prompt=prompt,
        is_active=is_active,
        position=0 if last_position is None else last_position + 1,
        created_at=now,
        updated_at=now,
    )
    db.add(behavior)
    await db.flush()
    return behavior


async def get_feedback(db: AsyncSession, call_id: str) -> Feedback | None:
    """Find existing feedback for a call."""
    result = await db.execute(select(Feedback).where(Feedback.call_id == call_id))
    return result.scalar_one_or_none()


async def _reload_feedback(db: AsyncSession, call_id: str) -> Feedback:
    result = await db.execute(
        select(Feedback)
        .where(Feedback.call_id == call_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _insert_feedback(db: AsyncSession, feedback: Feedback) -> bool:
    """Insert inside a savepoint. False when UNIQUE(call_id) says a row already exists."""
    try:
        async with db.begin_nested():
            db.add(feedback)
    except IntegrityError:
        return False
    return True


async def create_feedback_placeholder(db: AsyncSession, call_id: str) -> Feedback:
    """
    Register a score-less feedback row for a call, to be filled by the analysis.
    Returns the existing row if there already is one.
    """
    now = _now()
    placeholder = Feedback(
        feedback_id=str(uuid4()),
        call_id=call_id,
        score=None,
        positive=[],
        negative=[],
        opportunities=[],
        behaviors_analysis=[],
        generated_at=None,
        created_at=now,
        updated_at=now,
    )
    try:
        await _insert_feedback(db, placeholder)
        return await _reload_feedback(db, call_id)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Could not create feedback placeholder: {e}", call_id=call_id) from e


async def save_feedback(
    db: AsyncSession,
    call_id: str,
    score: int,
    verdicts: Sequence[Verdict],
    positive: Sequence[str],
    negative: Sequence[str],
    opportunities: Sequence[str],
) -> tuple[Feedback, bool]:
    """
    Persist generated feedback at most once per call.

    Inserts a new row, or fills a placeholder row with a conditional update
    (generated_at IS NULL). Whichever request writes first wins; a later one gets
    the winner's row back unchanged. Returns (feedback, created).
    """
    now = _now()
    values = {
        "score": score,
        "positive": list(positive),
        "negative": list(negative),
        "opportunities": list(opportunities),
        "behaviors_analysis": [v.model_dump(mode="json") for v in verdicts],
        "generated_at": now,
        "updated_at": now,
    }
    try:
        existing = await get_feedback(db, call_id)
        if existing is None:
            feedback = Feedback(feedback_id=str(uuid4()), call_id=call_id, created_at=now, **values)
            if await _insert_feedback(db, feedback):
                logger.info("Created feedback for call %s", call_id)
                return await _reload_feedback(db, call_id), True
            logger.info("Feedback row for call %s appeared concurrently", call_id)

        result = await db.execute(
            update(Feedback)
            .where(Feedback.call_id == call_id, Feedback.generated_at.is_(None))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        created = result.rowcount == 1
        if created:
            logger.info("Filled placeholder feedback for call %s", call_id)
        else:
            logger.warning("Feedback for call %s was already generated, keeping existing", call_id)
        return await _reload_feedback(db, call_id), created
    except SQLAlchemyError as e:
        raise PersistenceError(f"Could not save feedback: {e}", call_id=call_id) from e
