"""
Response parser for upstream AI calls.

Order of checks:
1) Non-success status -> UpstreamError (no retry)
2) Body decoded as JSON; non-JSON success body -> MalformedResponseError
3) Dialect-specific text extraction (Malformed / EmptyContent)
4) Extracted text decoded as JSON -> ParseError on failure

The parser does no field-level validation; that is the evaluator's job.
Failures are counted and raised, never logged here: the caller logs each
failed run once.
"""

from __future__ import annotations

import json
from typing import Any

from changewatch.analysis.dialects import Dialect
from changewatch.analysis.errors import MalformedResponseError, ParseError, UpstreamError
from changewatch.analysis.models import UpstreamResponse
from changewatch.observability.logging import get_logger
from changewatch.observability.telemetry import counter
from changewatch.utils.redaction import clip

logger = get_logger(__name__)


def decode_body(response: UpstreamResponse) -> Any:
    """Decode a success body. Raises MalformedResponseError if it is not JSON."""
    try:
        return json.loads(response.body)
    except (json.JSONDecodeError, TypeError) as e:
        counter("ai.response.malformed")
        raise MalformedResponseError(
            f"Response body is not JSON: {e}", raw_body=response.body
        ) from e


def extract_message_text(dialect: Dialect, response: UpstreamResponse) -> str:
    """Check status, decode the body and pull out the model's message text."""
    if not response.ok:
        counter("ai.response.upstream_error")
        raise UpstreamError(response.status_code, response.body)

    data = decode_body(response)
    return dialect.extract_text(data)


def decode_message_text(text: str) -> Any:
    """Decode the model's message text as JSON."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        counter("ai.response.parse_error")
        raise ParseError(text, e) from e


def parse_response(dialect: Dialect, response: UpstreamResponse) -> Any:
    """
    Extract and decode the JSON payload carried in an upstream response.

    Args:
        dialect: Dialect the request was built with
        response: Raw status + body

    Returns:
        Decoded payload (untyped; validated by the evaluator)
    """
    text = extract_message_text(dialect, response)
    logger.debug("Message content to parse: %s", clip(text))
    return decode_message_text(text)
