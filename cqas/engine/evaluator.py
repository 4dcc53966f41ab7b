"""Rubric evaluator - asks the judge about each behavior and normalizes the answer."""

import asyncio
import logging
from collections.abc import Sequence

from cqas.config import Settings
from cqas.engine.normalizer import fallback_verdict, normalize_verdict
from cqas.engine.prompts import SYSTEM_INSTRUCTIONS
from cqas.errors import ConfigurationError, EvaluationUnavailableError, RubricEvaluationError
from cqas.schemas.analysis import Rubric, Verdict

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_COMMENT = "The analysis of this behavior could not be completed"


class RubricEvaluator:
    """
    Evaluates a transcript against rubrics, one judge call per rubric.

    `judge` is anything with an async
    `evaluate(system_instructions, rubric_name, description, criteria_text, transcript_text) -> str`
    and a `check_configured()` that raises ConfigurationError when it cannot work
    (see cqas.llm.openai_judge.OpenAIJudge). A rubric whose evaluation keeps failing
    degrades to a non-compliant fallback verdict instead of failing the batch.
    """

    def __init__(self, judge, settings: Settings):
        self.judge = judge
        self.settings = settings

    async def _ask(self, rubric: Rubric, transcript: str) -> str:
        timeout = self.settings.llm_timeout_seconds
        try:
            return await asyncio.wait_for(
                self.judge.evaluate(
                    SYSTEM_INSTRUCTIONS,
                    rubric.name,
                    rubric.description,
                    rubric.prompt,
                    transcript,
                ),
                timeout=timeout,
            )
        except ConfigurationError:
            raise
        except asyncio.TimeoutError as e:
            raise RubricEvaluationError(f"timed out after {timeout}s") from e
        except Exception as e:
            raise RubricEvaluationError(str(e) or type(e).__name__) from e

    async def _evaluate(self, rubric: Rubric, transcript: str) -> tuple[Verdict, bool]:
        """(verdict, answered). answered is False when every attempt failed."""
        attempts = 1 + max(0, self.settings.llm_max_retries)
        last_error: RubricEvaluationError | None = None
        for attempt in range(1, attempts + 1):
            try:
                raw = await self._ask(rubric, transcript)
            except RubricEvaluationError as e:
                last_error = e
                logger.warning(
                    "Evaluation of behavior %s failed (attempt %d/%d): %s",
                    rubric.name,
                    attempt,
                    attempts,
                    e.message,
                )
                continue
            return normalize_verdict(rubric, raw), True

        logger.error("Giving up on behavior %s after %d attempts", rubric.name, attempts)
        return fallback_verdict(rubric, f"{ANALYSIS_FAILED_COMMENT}: {last_error.message}"), False

    async def evaluate(self, rubric: Rubric, transcript: str) -> Verdict:
        """Evaluate one rubric with retries. Never raises RubricEvaluationError."""
        verdict, _ = await self._evaluate(rubric, transcript)
        return verdict

    async def evaluate_all(self, rubrics: Sequence[Rubric], transcript: str) -> list[Verdict]:
        """
        Evaluate every rubric, at most `evaluation_concurrency` at a time.
        Verdicts come back in rubric order whatever the completion order.

        Raises ConfigurationError before any judge call when the judge is not
        configured, and EvaluationUnavailableError when no rubric got an answer.
        """
        self.judge.check_configured()
        semaphore = asyncio.Semaphore(max(1, self.settings.evaluation_concurrency))

        async def run(rubric: Rubric) -> tuple[Verdict, bool]:
            async with semaphore:
                logger.info("Analyzing behavior: %s - %s", rubric.behavior_id, rubric.name)
                return await self._evaluate(rubric, transcript)

        results = await asyncio.gather(*(run(r) for r in rubrics))
        if results and not any(answered for _, answered in results):
            raise EvaluationUnavailableError(
                f"None of the {len(results)} behaviors could be evaluated, try again later"
            )
        return [verdict for verdict, _ in results]
