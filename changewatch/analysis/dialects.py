"""
Request/response dialects for OpenAI-compatible providers.

Two model families on the same provider speak incompatible shapes:

  1. Reasoning-style (Responses API): ``POST {base}/responses`` with
     ``instructions`` + ``input``; text comes back as ``output_text`` or inside
     the ``output`` item list.
  2. Message-style (Chat Completions): ``POST {base}/chat/completions`` with a
     ``messages`` list; text comes back at ``choices[0].message.content``.

``select_dialect`` is the only place that decides which one applies. The
analysis flow and the connectivity test both go through it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from changewatch.analysis.errors import EmptyContentError, MalformedResponseError
from changewatch.analysis.models import AnalysisPurpose
from changewatch.config import (
    ANALYSIS_MAX_COMPLETION_TOKENS,
    ANALYSIS_REASONING_EFFORT,
    CONNECTION_TEST_MAX_COMPLETION_TOKENS,
    CONNECTION_TEST_REASONING_EFFORT,
    MESSAGE_TEMPERATURE,
    REASONING_MODEL_MARKER,
)

OUTPUT_TEXT_TYPE = "output_text"


def join_url(base_url: str, path: str) -> str:
    """Append an endpoint path, dropping one trailing slash from the base."""
    if base_url.endswith("/"):
        base_url = base_url[:-1]
    return f"{base_url}/{path}"


class Dialect(ABC):
    """One request/response shape."""

    name: str = ""
    path: str = ""

    def endpoint(self, base_url: str) -> str:
        return join_url(base_url, self.path)

    @abstractmethod
    def build_body(
        self,
        model: str,
        instructions: str,
        user_content: str,
        purpose: AnalysisPurpose,
    ) -> dict[str, Any]:
        """Request body for this dialect."""

    @abstractmethod
    def extract_text(self, data: Any) -> str:
        """Pull the model's message text out of a decoded success body.

        Raises:
            MalformedResponseError: body does not have this dialect's shape
            EmptyContentError: shape is fine but no text was produced
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class ReasoningDialect(Dialect):
    """Responses API, used by reasoning models."""

    name = "reasoning"
    path = "responses"

    def build_body(
        self,
        model: str,
        instructions: str,
        user_content: str,
        purpose: AnalysisPurpose,
    ) -> dict[str, Any]:
        effort = (
            CONNECTION_TEST_REASONING_EFFORT
            if purpose is AnalysisPurpose.CONNECTION_TEST
            else ANALYSIS_REASONING_EFFORT
        )
        return {
            "model": model,
            "reasoning": {"effort": effort},
            "instructions": instructions,
            "input": user_content,
        }

    def extract_text(self, data: Any) -> str:
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Expected a JSON object, got {type(data).__name__}", raw_body=str(data)
            )

        # Convenience field wins when present
        text = data.get(OUTPUT_TEXT_TYPE)
        if isinstance(text, str) and text:
            return text

        output = data.get("output")
        if isinstance(output, list):
            for item in output:
                entry = _first_text_entry(item)
                if entry is not None:
                    text = entry.get("text")
                    if isinstance(text, str) and text:
                        return text
                    break

        raise EmptyContentError("Empty message content in API response")


def _first_text_entry(item: Any) -> dict[str, Any] | None:
    if not isinstance(item, dict):
        return None
    content = item.get("content")
    if not isinstance(content, list):
        return None
    for entry in content:
        if isinstance(entry, dict) and entry.get("type") == OUTPUT_TEXT_TYPE:
            return entry
    return None


class MessageDialect(Dialect):
    """Chat Completions API, used by every other model."""

    name = "message"
    path = "chat/completions"

    def build_body(
        self,
        model: str,
        instructions: str,
        user_content: str,
        purpose: AnalysisPurpose,
    ) -> dict[str, Any]:
        max_tokens = (
            CONNECTION_TEST_MAX_COMPLETION_TOKENS
            if purpose is AnalysisPurpose.CONNECTION_TEST
            else ANALYSIS_MAX_COMPLETION_TOKENS
        )
        return {
            "model": model,
            "messages": [
                {"role": "system", "content": instructions},
                {"role": "user", "content": user_content},
            ],
            "temperature": MESSAGE_TEMPERATURE,
            "max_completion_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }

    def extract_text(self, data: Any) -> str:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise MalformedResponseError(
                "Invalid API response structure: missing choices", raw_body=str(data)
            )

        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise MalformedResponseError(
                "Invalid API response structure: missing message", raw_body=str(data)
            )

        content = message.get("content")
        if content is None or content == "":
            raise EmptyContentError("Empty message content in API response")
        if not isinstance(content, str):
            raise MalformedResponseError(
                f"Message content is {type(content).__name__}, expected string",
                raw_body=str(data),
            )
        return content


REASONING = ReasoningDialect()
MESSAGE = MessageDialect()


def is_reasoning_model(model: str) -> bool:
    """Case-sensitive substring check on the configured model identifier."""
    return REASONING_MODEL_MARKER in model


def select_dialect(model: str) -> Dialect:
    """Pick the dialect for a model identifier. Deterministic and pure."""
    return REASONING if is_reasoning_model(model) else MESSAGE
