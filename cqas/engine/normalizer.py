"""Verdict normalizer - parses raw model output and audits it for self-contradiction.

The model sometimes answers "compliant" while its own justification describes a
failure. After parsing, a compliant verdict's comment is scanned for failure
markers and for an insufficient count of met sub-criteria; either one downgrades
the verdict to non-compliant. The downgrade is one-directional.
"""

import json
import logging
import re
from dataclasses import dataclass

from cqas.schemas.analysis import Evaluation, Rubric, Verdict

logger = logging.getLogger(__name__)

PARSE_FAILURE_COMMENT = "The response could not be parsed; this behavior could not be analyzed automatically."

FAIL_PHRASES = (
    "was not identified",
    "did not identify",
    "did not mention",
    "did not ask",
    "did not explain",
    "did not verify",
    "did not offer",
    "did not provide",
    "did not comply",
    "met only 1 of",
    "met only 2 of",
    "only met 1 of",
    "only met 2 of",
    "does not meet the criteria",
    "does not meet the minimum",
    "does not meet the requirement",
)

EVALUATION_ALIASES = {
    "compliant": Evaluation.COMPLIANT,
    "non-compliant": Evaluation.NON_COMPLIANT,
    "non compliant": Evaluation.NON_COMPLIANT,
    "noncompliant": Evaluation.NON_COMPLIANT,
    "not compliant": Evaluation.NON_COMPLIANT,
}

NUMBER_WORDS = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}

_N = r"(\d+|" + "|".join(NUMBER_WORDS) + r")"

FENCED_JSON_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

# Minimum-count phrasing in the criteria text, first match wins
THRESHOLD_PATTERNS = (
    re.compile(rf"\bat\s+least\s+{_N}\b"),
    re.compile(rf"\bminimum(?:\s+of)?\s+{_N}\b"),
    re.compile(rf"\b{_N}\s+(?:of|out\s+of)\s+{_N}\b"),
)

# "only 1 of", "only met 2 of", "asked only 1 out of"
MET_COUNT_RE = re.compile(rf"\bonly\s+(?:[a-z]+\s+){{0,2}}?{_N}\s+(?:of|out\s+of)\b")


@dataclass(frozen=True)
class Parsed:
    """Successfully parsed model verdict, before auditing."""

    evaluation: Evaluation
    comments: str


@dataclass(frozen=True)
class ParseFailure:
    """Model output that could not be turned into a verdict."""

    reason: str


ParseResult = Parsed | ParseFailure


def _to_int(token: str) -> int:
    if token.isdigit():
        return int(token)
    return NUMBER_WORDS[token]


def _extract_json_text(raw: str) -> str | None:
    text = raw.strip()
    match = FENCED_JSON_RE.search(text)
    if match:
        return match.group(1)
    if text.startswith("{") and text.endswith("}"):
        return text
    return None


def parse_verdict(raw: str | None) -> ParseResult:
    """Parse raw model text into Parsed or ParseFailure. Never raises."""
    if not raw or not raw.strip():
        return ParseFailure("empty response")

    json_text = _extract_json_text(raw)
    if json_text is None:
        return ParseFailure("response is not in JSON format")

    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        return ParseFailure(f"invalid JSON: {e.msg}")

    if not isinstance(data, dict):
        return ParseFailure("JSON is not an object")

    evaluation = data.get("evaluation")
    comments = data.get("comments")
    if not isinstance(evaluation, str) or not evaluation.strip():
        return ParseFailure("missing evaluation")
    if not isinstance(comments, str) or not comments.strip():
        return ParseFailure("missing comments")

    normalized = EVALUATION_ALIASES.get(evaluation.strip().lower())
    if normalized is None:
        return ParseFailure(f"unrecognized evaluation: {evaluation!r}")

    return Parsed(evaluation=normalized, comments=comments)


def required_minimum(criteria: str | None) -> int | None:
    """Minimum number of sub-criteria the rubric requires, if it states one."""
    if not criteria:
        return None
    text = criteria.lower()
    for pattern in THRESHOLD_PATTERNS:
        match = pattern.search(text)
        if match:
            return _to_int(match.group(1))
    return None


def reported_met_count(comments: str) -> int | None:
    """Number of items the comment says were met ("only K of ..."), if it says so."""
    match = MET_COUNT_RE.search(comments.lower())
    if match:
        return _to_int(match.group(1))
    return None


def has_fail_phrase(comments: str) -> bool:
    lowered = comments.lower()
    return any(phrase in lowered for phrase in FAIL_PHRASES)


def contradicts_compliance(criteria: str | None, comments: str) -> bool:
    """True when a comment attached to a compliant verdict describes non-compliance."""
    if has_fail_phrase(comments):
        return True
    minimum = required_minimum(criteria)
    if minimum is None:
        return False
    met = reported_met_count(comments)
    return met is not None and met < minimum


def fallback_verdict(rubric: Rubric, comments: str) -> Verdict:
    """Deterministic non-compliant verdict used when no real verdict is available."""
    return Verdict(
        behavior_id=rubric.behavior_id,
        name=rubric.name,
        evaluation=Evaluation.NON_COMPLIANT,
        comments=comments,
    )


def normalize_verdict(rubric: Rubric, raw: str | None) -> Verdict:
    """Parse and audit raw model output for one rubric. The comment is kept verbatim."""
    result = parse_verdict(raw)
    if isinstance(result, ParseFailure):
        logger.warning("Could not parse verdict for %s: %s", rubric.name, result.reason)
        return fallback_verdict(rubric, PARSE_FAILURE_COMMENT)

    evaluation = result.evaluation
    if evaluation is Evaluation.COMPLIANT and contradicts_compliance(rubric.prompt, result.comments):
        logger.info(
            "Correcting evaluation for %s: model said compliant but comments indicate non-compliant",
            rubric.name,
        )
        evaluation = Evaluation.NON_COMPLIANT

    return Verdict(
        behavior_id=rubric.behavior_id,
        name=rubric.name,
        evaluation=evaluation,
        comments=result.comments,
    )
