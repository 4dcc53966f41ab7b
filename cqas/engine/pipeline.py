"""Call analysis pipeline: transcript -> per-behavior verdicts -> score and feedback -> single write."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cqas.engine.composer import generate_negatives, generate_opportunities, generate_positives
from cqas.engine.evaluator import RubricEvaluator
from cqas.engine.scoring import score_from_verdicts, score_label
from cqas.engine.transcript import transcript_to_text
from cqas.errors import CallNotFoundError, NoActiveRubricsError, NoTranscriptError, PersistenceError
from cqas.models import Behavior, Feedback
from cqas.schemas.analysis import AnalysisResult, Rubric, Verdict
from cqas.storage.repositories import get_active_behaviors, get_call, get_feedback, save_feedback

logger = logging.getLogger(__name__)


def rubric_from_behavior(behavior: Behavior) -> Rubric:
    return Rubric(
        behavior_id=str(behavior.behavior_id),
        name=behavior.name,
        description=behavior.description,
        prompt=behavior.prompt or "",
    )


def is_generated(feedback: Feedback | None) -> bool:
    """Feedback counts as generated once generated_at is set, the same test save_feedback writes under."""
    return feedback is not None and feedback.generated_at is not None


def feedback_to_result(feedback: Feedback) -> AnalysisResult:
    """Render a persisted feedback row. Same row, same result."""
    score = feedback.score or 0
    return AnalysisResult(
        feedback_id=str(feedback.feedback_id),
        call_id=str(feedback.call_id),
        score=score,
        score_label=score_label(score),
        verdicts=[Verdict.model_validate(v) for v in feedback.behaviors_analysis or []],
        positive=list(feedback.positive or []),
        negative=list(feedback.negative or []),
        opportunities=list(feedback.opportunities or []),
        created_at=feedback.created_at,
    )


async def _commit(db: AsyncSession, call_id: str, what: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceError(f"Could not {what}: {e}", call_id=call_id) from e


async def analyze_call(db: AsyncSession, call_id: str, evaluator: RubricEvaluator) -> AnalysisResult:
    """
    Analyze a call against every active behavior and persist the feedback.

    Idempotent: if the call already has generated feedback it is returned as is,
    with no model calls. Raises CallNotFoundError, NoTranscriptError,
    NoActiveRubricsError, ConfigurationError, EvaluationUnavailableError or
    PersistenceError; nothing is written in those cases.

    The read transaction is committed before the judge is consulted, so no
    connection is held while the model works. Pending changes on the session
    are committed with it.
    """
    existing = await get_feedback(db, call_id)
    if is_generated(existing):
        logger.info("Complete feedback already exists for call %s", call_id)
        return feedback_to_result(existing)

    call = await get_call(db, call_id)
    if call is None:
        raise CallNotFoundError("Call not found", call_id=call_id)

    transcript = transcript_to_text(call.transcription)
    if transcript is None:
        raise NoTranscriptError("The call has no transcript", call_id=call_id)

    behaviors = await get_active_behaviors(db)
    if not behaviors:
        logger.warning("No active behaviors found for analysis")
        raise NoActiveRubricsError("There are no active behaviors to analyze", call_id=call_id)

    logger.info("Found %d active behaviors for analysis of call %s", len(behaviors), call_id)
    rubrics = [rubric_from_behavior(b) for b in behaviors]
    await _commit(db, call_id, "release read transaction")

    verdicts = await evaluator.evaluate_all(rubrics, transcript)

    score = score_from_verdicts(verdicts)
    feedback, created = await save_feedback(
        db,
        call_id=call_id,
        score=score,
        verdicts=verdicts,
        positive=generate_positives(verdicts, score),
        negative=generate_negatives(verdicts),
        opportunities=generate_opportunities(verdicts),
    )
    await _commit(db, call_id, "commit feedback")

    logger.info(
        "Analyzed %d behaviors for call %s: score %d (%s)",
        len(verdicts),
        call_id,
        feedback.score or 0,
        "created" if created else "existing kept",
    )
    return feedback_to_result(feedback)
