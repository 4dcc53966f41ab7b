"""Shared API dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status

from cqas.config import settings
from cqas.engine.evaluator import RubricEvaluator
from cqas.errors import (
    AnalysisError,
    CallNotFoundError,
    ConfigurationError,
    EvaluationUnavailableError,
    NoActiveRubricsError,
    NoTranscriptError,
    PersistenceError,
)
from cqas.llm.openai_judge import OpenAIJudge


@lru_cache
def get_evaluator() -> RubricEvaluator:
    """Process-wide evaluator, built once from settings."""
    return RubricEvaluator(OpenAIJudge(settings), settings)


EvaluatorDep = Annotated[RubricEvaluator, Depends(get_evaluator)]

_STATUS_BY_ERROR = (
    (CallNotFoundError, status.HTTP_404_NOT_FOUND),
    (NoTranscriptError, status.HTTP_409_CONFLICT),
    (NoActiveRubricsError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (EvaluationUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def to_http_exception(error: AnalysisError) -> HTTPException:
    """Map an analysis error to an HTTP error with a stable code."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status_code = code
            break
    return HTTPException(
        status_code=status_code,
        detail={"code": error.code, "message": error.message},
    )
