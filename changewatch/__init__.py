"""changewatch - AI meaningfulness analysis and notification dispatch for website changes"""

from __future__ import annotations

__version__ = "0.1.0"


# Lazy imports for the pipeline module
def __getattr__(name: str):
    """
    Lazy imports to avoid loading pydantic/requests when only importing lightweight modules.
    """
    if name in ("AnalysisPipeline", "AnalysisInvocation", "PipelineOutcome", "PipelineState"):
        from changewatch import pipeline

        return getattr(pipeline, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "AnalysisInvocation",
    "AnalysisPipeline",
    "PipelineOutcome",
    "PipelineState",
]
