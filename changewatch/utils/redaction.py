"""
Shared logging utilities for redacting sensitive information before telemetry.

Provides:
- redact(): Hash sensitive strings for correlation without exposure
- redact_headers(): Mask credentials in outbound HTTP headers
- clip(): Bound raw upstream text before it reaches a log line
"""

from __future__ import annotations

from collections.abc import Mapping
from hashlib import sha256

from changewatch.config import LOG_RAW_TEXT_CHARS

_SECRET_HEADERS = {"authorization", "x-api-key"}


def redact(value: str | None) -> str:
    """
    Return a stable hash representation of a sensitive string.
    """
    if not value:
        return "hash:missing"
    digest = sha256(value.encode("utf-8")).hexdigest()[:12]
    return f"hash:{digest}"


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy headers, replacing credential values with their hash."""
    return {
        name: redact(value) if name.lower() in _SECRET_HEADERS else value
        for name, value in headers.items()
    }


def clip(text: str | None, max_length: int = LOG_RAW_TEXT_CHARS) -> str:
    """
    Truncate raw text for logging.

    Example:
        clip("x" * 600) -> "xxx...(+100 chars)"
    """
    if text is None:
        return ""
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}...(+{len(text) - max_length} chars)"
