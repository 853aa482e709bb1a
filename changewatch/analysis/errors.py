"""
Failure taxonomy for the analysis pipeline.

Every variant is terminal for the run that raised it: nothing here is retried.
Messages carry raw upstream text clipped; the full text stays on the attributes.
The controller catches ``AnalysisError`` and logs; none of these reach the
diff-ingestion caller.
"""

from __future__ import annotations

from typing import Any

from changewatch.utils.redaction import clip


class AnalysisError(Exception):
    """Base exception for analysis pipeline errors."""

    pass


class ConfigurationError(AnalysisError):
    """AI analysis is disabled or no API key is configured."""

    pass


class TransportError(AnalysisError):
    """The upstream HTTP call failed before a response arrived."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class UpstreamError(AnalysisError):
    """The upstream API answered with a non-success status."""

    def __init__(self, status: int, body: str):
        super().__init__(f"API error: {status} - {clip(body)}")
        self.status = status
        self.body = body


class MalformedResponseError(AnalysisError):
    """The success body does not have the shape the dialect expects."""

    def __init__(self, message: str, raw_body: str = ""):
        super().__init__(message)
        self.raw_body = raw_body


class EmptyContentError(AnalysisError):
    """The response shape was valid but carried no message text."""

    pass


class ParseError(AnalysisError):
    """The extracted message text is not valid JSON."""

    def __init__(self, raw_text: str, cause: Exception):
        super().__init__(
            f'Failed to parse AI response as JSON: "{clip(raw_text)}". Parse error: {cause}'
        )
        self.raw_text = raw_text
        self.cause = cause


class InvalidSchemaError(AnalysisError):
    """The decoded payload is missing a field or has a mistyped one."""

    def __init__(self, payload: Any, detail: str):
        super().__init__(f"Invalid AI response format: {detail}")
        self.payload = payload
        self.detail = detail
