"""Analysis and feedback schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Evaluation(str, Enum):
    """Binary compliance decision for one behavior."""

    COMPLIANT = "compliant"
    NON_COMPLIANT = "non-compliant"


class Rubric(BaseModel):
    """Active behavior as seen by the evaluation engine."""

    behavior_id: str
    name: str
    description: str | None = None
    prompt: str = ""


class Verdict(BaseModel):
    """Per-behavior outcome for one call."""

    behavior_id: str | None = None
    name: str
    evaluation: Evaluation
    comments: str

    @property
    def is_compliant(self) -> bool:
        return self.evaluation is Evaluation.COMPLIANT


class AnalysisResult(BaseModel):
    """Result of analyzing a call, rendered from the persisted feedback."""

    feedback_id: str
    call_id: str
    score: int
    score_label: str
    verdicts: list[Verdict] = Field(default_factory=list)
    positive: list[str] = Field(default_factory=list)
    negative: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
