"""Call analysis endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from cqas.api.dependencies import EvaluatorDep, to_http_exception
from cqas.database import get_db
from cqas.engine.pipeline import analyze_call, feedback_to_result, is_generated
from cqas.errors import AnalysisError
from cqas.schemas.analysis import AnalysisResult
from cqas.storage.repositories import get_feedback

router = APIRouter()


@router.post("/calls/{call_id}/analysis", response_model=AnalysisResult)
async def analyze(
    call_id: UUID,
    evaluator: EvaluatorDep,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Evaluate the call against all active behaviors and store its feedback.
    Idempotent: once feedback exists it is returned unchanged.
    """
    try:
        return await analyze_call(db, str(call_id), evaluator)
    except AnalysisError as e:
        raise to_http_exception(e) from e


@router.get("/calls/{call_id}/feedback", response_model=AnalysisResult)
async def get_call_feedback(
    call_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get generated feedback for a call."""
    feedback = await get_feedback(db, str(call_id))
    if not is_generated(feedback):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "feedback_not_found", "message": "Feedback not found"},
        )
    return feedback_to_result(feedback)
