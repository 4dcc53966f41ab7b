"""Unit tests for the rubric evaluator."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from cqas.engine.evaluator import ANALYSIS_FAILED_COMMENT, RubricEvaluator
from cqas.engine.normalizer import PARSE_FAILURE_COMMENT
from cqas.engine.prompts import SYSTEM_INSTRUCTIONS, build_evaluation_prompt
from cqas.errors import ConfigurationError, EvaluationUnavailableError
from cqas.llm.openai_judge import OpenAIJudge
from cqas.schemas.analysis import Evaluation, Rubric


def _rubric(name: str = "Greeting", prompt: str = "The agent must greet the customer.") -> Rubric:
    return Rubric(behavior_id=f"id-{name}", name=name, description="Opening", prompt=prompt)


def test_prompt_contains_rubric_and_transcript():
    """The prompt carries every input and the sub-criteria warning."""
    prompt = build_evaluation_prompt("Discovery", "Needs", "at least 3 of 5 questions", "Agent: Hi")
    assert "BEHAVIOR TO EVALUATE: Discovery" in prompt
    assert "DESCRIPTION: Needs" in prompt
    assert "EVALUATION CRITERIA: at least 3 of 5 questions" in prompt
    assert "Agent: Hi" in prompt
    assert "at least 3 of 4 criteria" in prompt
    assert '"evaluation": "compliant" OR "non-compliant"' in prompt


def test_prompt_is_deterministic():
    args = ("Greeting", None, "greet", "Agent: Hi")
    assert build_evaluation_prompt(*args) == build_evaluation_prompt(*args)
    assert "DESCRIPTION: \n" in build_evaluation_prompt(*args)


async def test_evaluate_normalizes_answer(judge, evaluator):
    """The judge's answer is parsed and audited."""
    judge.responses["Greeting"] = '{"evaluation": "compliant", "comments": "The agent did not ask for a name."}'
    verdict = await evaluator.evaluate(_rubric(), "Agent: Hi")
    assert verdict.evaluation is Evaluation.NON_COMPLIANT
    assert verdict.behavior_id == "id-Greeting"
    assert judge.calls == ["Greeting"]


async def test_evaluate_retries_then_succeeds(judge, evaluator):
    """One failure is retried."""
    judge.responses["Greeting"] = [
        RuntimeError("503 from provider"),
        '{"evaluation": "compliant", "comments": "Warm greeting."}',
    ]
    verdict = await evaluator.evaluate(_rubric(), "Agent: Hi")
    assert verdict.evaluation is Evaluation.COMPLIANT
    assert judge.calls == ["Greeting", "Greeting"]


async def test_evaluate_falls_back_after_retries(judge, evaluator):
    """Exhausted retries give a non-compliant fallback instead of raising."""
    judge.responses["Greeting"] = [RuntimeError("boom"), RuntimeError("still down")]
    verdict = await evaluator.evaluate(_rubric(), "Agent: Hi")
    assert verdict.evaluation is Evaluation.NON_COMPLIANT
    assert verdict.comments == f"{ANALYSIS_FAILED_COMMENT}: still down"
    assert len(judge.calls) == 2


async def test_unparseable_answer_is_not_retried(judge, evaluator):
    judge.responses["Greeting"] = "I cannot evaluate this."
    verdict = await evaluator.evaluate(_rubric(), "Agent: Hi")
    assert verdict.comments == PARSE_FAILURE_COMMENT
    assert judge.calls == ["Greeting"]


class SlowJudge:
    async def evaluate(self, *args):
        await asyncio.sleep(5)
        return '{"evaluation": "compliant", "comments": "Too late."}'


async def test_evaluate_timeout_falls_back(settings):
    """A judge slower than the timeout counts as a failure."""
    settings.llm_timeout_seconds = 0.01
    settings.llm_max_retries = 0
    verdict = await RubricEvaluator(SlowJudge(), settings).evaluate(_rubric(), "Agent: Hi")
    assert verdict.evaluation is Evaluation.NON_COMPLIANT
    assert "timed out" in verdict.comments


class OutOfOrderJudge:
    """Answers later rubrics first."""

    def __init__(self):
        self.finished: list[str] = []

    def check_configured(self):
        pass

    async def evaluate(self, system_instructions, rubric_name, *args):
        await asyncio.sleep({"A": 0.05, "B": 0.02, "C": 0.0}[rubric_name])
        self.finished.append(rubric_name)
        return f'{{"evaluation": "compliant", "comments": "{rubric_name} ok"}}'


async def test_evaluate_all_keeps_rubric_order(settings):
    """Concurrent evaluation still returns verdicts in rubric order."""
    settings.evaluation_concurrency = 3
    judge = OutOfOrderJudge()
    verdicts = await RubricEvaluator(judge, settings).evaluate_all(
        [_rubric("A"), _rubric("B"), _rubric("C")], "Agent: Hi"
    )
    assert judge.finished == ["C", "B", "A"]
    assert [v.name for v in verdicts] == ["A", "B", "C"]


async def test_evaluate_all_sequential_by_default(settings):
    """With concurrency 1 each rubric finishes before the next starts."""
    judge = OutOfOrderJudge()
    verdicts = await RubricEvaluator(judge, settings).evaluate_all(
        [_rubric("A"), _rubric("B"), _rubric("C")], "Agent: Hi"
    )
    assert judge.finished == ["A", "B", "C"]
    assert [v.comments for v in verdicts] == ["A ok", "B ok", "C ok"]


async def test_openai_judge_builds_chat_request(settings):
    """OpenAIJudge sends system + user messages and returns the content."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='{"evaluation": "compliant"}'))]
        )
    )
    judge = OpenAIJudge(settings, client=client)

    raw = await judge.evaluate(SYSTEM_INSTRUCTIONS, "Greeting", "Opening", "greet", "Agent: Hi")

    assert raw == '{"evaluation": "compliant"}'
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == settings.openai_model
    assert kwargs["temperature"] == settings.openai_temperature
    assert kwargs["messages"][0] == {"role": "system", "content": SYSTEM_INSTRUCTIONS}
    assert kwargs["messages"][1]["content"] == build_evaluation_prompt("Greeting", "Opening", "greet", "Agent: Hi")


async def test_openai_judge_requires_api_key(settings):
    settings.openai_api_key = ""
    judge = OpenAIJudge(settings)
    with pytest.raises(ConfigurationError):
        judge.check_configured()
    with pytest.raises(ConfigurationError):
        await judge.evaluate(SYSTEM_INSTRUCTIONS, "Greeting", None, "greet", "Agent: Hi")


async def test_missing_api_key_is_not_a_fallback_verdict(settings):
    """A configuration error stops the batch instead of becoming per-rubric fallbacks."""
    settings.openai_api_key = ""
    evaluator = RubricEvaluator(OpenAIJudge(settings), settings)
    with pytest.raises(ConfigurationError):
        await evaluator.evaluate(_rubric(), "Agent: Hi")
    with pytest.raises(ConfigurationError):
        await evaluator.evaluate_all([_rubric("A"), _rubric("B")], "Agent: Hi")


async def test_evaluate_all_checks_configuration_first(judge, evaluator):
    judge.configured = False
    with pytest.raises(ConfigurationError):
        await evaluator.evaluate_all([_rubric("A"), _rubric("B")], "Agent: Hi")
    assert judge.calls == []


async def test_evaluate_all_fails_when_no_rubric_is_answered(judge, evaluator):
    """All rubrics failing is an outage, not a score of zero."""
    judge.default = RuntimeError("provider down")
    with pytest.raises(EvaluationUnavailableError):
        await evaluator.evaluate_all([_rubric("A"), _rubric("B")], "Agent: Hi")
    assert judge.calls == ["A", "A", "B", "B"]


async def test_evaluate_all_keeps_partial_failures(judge, evaluator):
    judge.responses["A"] = [RuntimeError("boom"), RuntimeError("still down")]
    verdicts = await evaluator.evaluate_all([_rubric("A"), _rubric("B")], "Agent: Hi")
    assert [v.evaluation for v in verdicts] == [Evaluation.NON_COMPLIANT, Evaluation.COMPLIANT]
    assert verdicts[0].comments == f"{ANALYSIS_FAILED_COMMENT}: still down"
