"""Analysis error taxonomy."""


class AnalysisError(Exception):
    """Base class for failures surfaced by the call analysis pipeline."""

    code = "analysis_error"

    def __init__(self, message: str, call_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.call_id = call_id


class CallNotFoundError(AnalysisError):
    """The call does not exist."""

    code = "call_not_found"


class NoTranscriptError(AnalysisError):
    """The call has no transcript yet, so nothing can be evaluated."""

    code = "no_transcript"


class NoActiveRubricsError(AnalysisError):
    """No active behaviors are configured to evaluate against."""

    code = "no_active_rubrics"


class PersistenceError(AnalysisError):
    """Storage write failed. Nothing was persisted, the whole analysis can be retried."""

    code = "persistence_error"


class RubricEvaluationError(AnalysisError):
    """A single rubric evaluation failed. Recovered into a fallback verdict, never raised to callers."""

    code = "rubric_evaluation_error"


class ConfigurationError(AnalysisError):
    """The judge is not configured (missing API key). Nothing is evaluated or written."""

    code = "configuration_error"


class EvaluationUnavailableError(AnalysisError):
    """Every rubric evaluation failed. Nothing was persisted, the analysis can be retried."""

    code = "evaluation_unavailable"
