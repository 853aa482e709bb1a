"""
Analysis evaluator - schema validation and the meaningfulness decision.

The model's own meaningfulness flag (if any) is never consulted:
``is_meaningful`` is recomputed as ``score >= threshold`` every time.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import ValidationError

from changewatch.analysis.errors import InvalidSchemaError
from changewatch.analysis.models import (
    AIConfig,
    AnalysisResult,
    AnalysisSchema,
    ConnectionCheckSchema,
    utc_now,
)
from changewatch.observability.telemetry import counter


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'payload'}: {err['msg']}"
        for err in exc.errors()
    )


def validate_analysis_payload(payload: Any) -> AnalysisSchema:
    """
    Turn a decoded payload into the typed schema.

    Raises:
        InvalidSchemaError: payload is not an object, or score/reasoning
            is missing or mistyped
    """
    if not isinstance(payload, dict):
        counter("analysis.invalid_schema")
        raise InvalidSchemaError(payload, f"expected a JSON object, got {type(payload).__name__}")
    try:
        return AnalysisSchema.model_validate(payload)
    except ValidationError as e:
        counter("analysis.invalid_schema")
        raise InvalidSchemaError(payload, _describe(e)) from e


def is_meaningful(score: float, threshold: float) -> bool:
    """Inclusive threshold: a score equal to the threshold is meaningful."""
    return score >= threshold


def evaluate_analysis(
    payload: Any,
    config: AIConfig,
    now: datetime | None = None,
) -> AnalysisResult:
    """
    Validate a decoded payload and derive the final AnalysisResult.

    Args:
        payload: Decoded model output
        config: Supplies the threshold and the model identifier recorded
        now: Analysis timestamp (defaults to current UTC time)

    Returns:
        AnalysisResult stamped with the configured model, not the echoed one
    """
    validated = validate_analysis_payload(payload)
    return AnalysisResult(
        score=validated.score,
        is_meaningful=is_meaningful(validated.score, config.meaningful_change_threshold),
        reasoning=validated.reasoning,
        analyzed_at=now or utc_now(),
        model=config.model,
    )


def validate_connection_payload(payload: Any) -> ConnectionCheckSchema:
    """Looser contract for the connectivity test: an object with an optional message."""
    if not isinstance(payload, dict):
        raise InvalidSchemaError(payload, f"expected a JSON object, got {type(payload).__name__}")
    try:
        return ConnectionCheckSchema.model_validate(payload)
    except ValidationError as e:
        raise InvalidSchemaError(payload, _describe(e)) from e
