"""Feedback text generation from behavior verdicts.

Keyword matching over behavior names, no model calls.
"""

import re
from collections.abc import Sequence

from cqas.schemas.analysis import Verdict

MAX_ITEMS = 5

NO_OPPORTUNITIES = "No significant improvement opportunities were identified"

NO_POSITIVES_FALLBACK = [
    "The call was completed and improvement opportunities were identified",
]

COMMON_POSITIVES = [
    "The agent kept a professional tone",
    "The agent identified themselves correctly",
    "The agent tried to understand the customer's need",
    "The agent provided some kind of solution",
    "The agent kept the conversation cordial",
]

# (keywords, text) - first rule with a word of the behavior name starting with a keyword wins
OPPORTUNITY_RULES = (
    (("greeting",), "Improve the initial greeting and introduction"),
    (("listening", "attention"), "Improve active listening techniques"),
    (("question", "discovery", "ask", "probe"), "Implement questions to probe needs"),
    (("solution", "alternative"), "Offer alternative solutions"),
    (("closing", "close"), "Improve the call closing"),
    (("objection",), "Training in objection handling"),
)

POSITIVE_RULES = (
    (("greeting",), "Excellent introduction and welcome"),
    (("listening",), "Showed active and empathetic listening"),
    (("solution",), "Offered effective and personalized solutions"),
    (("closing", "close"), "Closed the call professionally and completely"),
    (("objection",), "Handled objections effectively"),
)


def _match(name: str, rules) -> str | None:
    lowered = name.lower()
    for keywords, text in rules:
        if any(re.search(rf"\b{re.escape(k)}", lowered) for k in keywords):
            return text
    return None


def generate_opportunities(verdicts: Sequence[Verdict]) -> list[str]:
    """Actionable suggestions, one per non-compliant behavior."""
    not_met = [v for v in verdicts if not v.is_compliant]
    if not not_met:
        return [NO_OPPORTUNITIES]
    return [_match(v.name, OPPORTUNITY_RULES) or f"Improve on: {v.name}" for v in not_met]


def generate_positives(verdicts: Sequence[Verdict], score: int) -> list[str]:
    """Affirmations for compliant behaviors. Never empty, at most MAX_ITEMS."""
    met = [v for v in verdicts if v.is_compliant]
    if not met:
        return list(NO_POSITIVES_FALLBACK)

    if score > 70:
        positives = [_match(v.name, POSITIVE_RULES) or f"Met: {v.name}" for v in met]
        return positives[:MAX_ITEMS]

    return COMMON_POSITIVES[: min(MAX_ITEMS, len(met) + 2)]


def generate_negatives(verdicts: Sequence[Verdict]) -> list[str]:
    not_met = [v for v in verdicts if not v.is_compliant]
    return [f"Not met: {v.name}" for v in not_met[:MAX_ITEMS]]
