"""
Analysis module - turns a diff into a scored, thresholded AnalysisResult.

Request building and response parsing speak two provider dialects selected
from the model identifier.
"""

from changewatch.analysis.errors import (
    AnalysisError,
    ConfigurationError,
    EmptyContentError,
    InvalidSchemaError,
    MalformedResponseError,
    ParseError,
    TransportError,
    UpstreamError,
)
from changewatch.analysis.models import (
    AIConfig,
    AnalysisPurpose,
    AnalysisResult,
    DiffPayload,
)

__all__ = [
    # Models
    "AIConfig",
    "AnalysisPurpose",
    "AnalysisResult",
    "DiffPayload",
    # Errors
    "AnalysisError",
    "ConfigurationError",
    "EmptyContentError",
    "InvalidSchemaError",
    "MalformedResponseError",
    "ParseError",
    "TransportError",
    "UpstreamError",
]
