"""Scoring utilities."""

from collections.abc import Sequence

from cqas.schemas.analysis import Verdict

SCORE_LABELS = (
    (90, "Excellent"),
    (80, "Very good"),
    (70, "Good"),
    (60, "Fair"),
    (50, "Needs improvement"),
)
LOWEST_LABEL = "Critical"


def score_from_verdicts(verdicts: Sequence[Verdict]) -> int:
    """
    Percentage of compliant verdicts, 0-100, halves rounded up.
    All behaviors weigh the same. No verdicts scores 0.
    """
    total = len(verdicts)
    if total == 0:
        return 0
    compliant = sum(1 for v in verdicts if v.is_compliant)
    # floor(100 * compliant / total + 0.5) in integer arithmetic
    return (200 * compliant + total) // (2 * total)


def score_label(score: int | None) -> str:
    """Map a numeric score to its qualitative label."""
    if score is None:
        return LOWEST_LABEL
    for threshold, label in SCORE_LABELS:
        if score >= threshold:
            return label
    return LOWEST_LABEL
