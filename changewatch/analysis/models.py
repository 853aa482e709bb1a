"""
Analysis domain models (Pydantic v2).

``AIConfig`` carries the per-user defaults explicitly into every run.
``AnalysisSchema`` is the typed view of the decoded model payload, validated
at the parser/evaluator boundary; nothing downstream sees the raw dict.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from changewatch.analysis.prompts import DEFAULT_SYSTEM_PROMPT
from changewatch.config import (
    DEFAULT_AI_BASE_URL,
    DEFAULT_AI_MODEL,
    DEFAULT_MEANINGFUL_CHANGE_THRESHOLD,
)
from changewatch.utils.redaction import redact_headers


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


class AnalysisPurpose(str, Enum):
    """Why a request is being built. Controls prompts and budgets only."""

    ANALYSIS = "analysis"
    CONNECTION_TEST = "connection_test"


class AIConfig(BaseModel):
    """A user's AI provider settings, read-only to the pipeline."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(..., min_length=1, description="Bearer token for the provider")
    base_url: str = Field(default=DEFAULT_AI_BASE_URL, description="Provider API root")
    model: str = Field(default=DEFAULT_AI_MODEL, description="Model identifier")
    system_prompt: str | None = Field(default=None, description="Custom system prompt")
    meaningful_change_threshold: float = Field(
        default=DEFAULT_MEANINGFUL_CHANGE_THRESHOLD,
        description="Minimum score (inclusive) for a change to count as meaningful",
    )

    @property
    def instructions(self) -> str:
        """System prompt to send: the user's own, or the built-in default."""
        return self.system_prompt or DEFAULT_SYSTEM_PROMPT

    def __repr__(self) -> str:
        return (
            f"AIConfig(base_url={self.base_url!r}, model={self.model!r}, "
            f"threshold={self.meaningful_change_threshold!r})"
        )


class DiffPayload(BaseModel):
    """Detected content change, produced upstream by the scraper."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str
    json_data: Any = Field(default=None, alias="json")

    def to_payload(self) -> dict[str, Any]:
        return {"text": self.text, "json": self.json_data}


class AnalysisSchema(BaseModel):
    """Schema for the decoded model response.

    Extra keys are ignored, including any ``isMeaningful`` flag the model
    volunteers: meaningfulness is always recomputed from the threshold.
    """

    model_config = ConfigDict(extra="ignore")

    score: int | float = Field(description="How meaningful the change is (0-100)")
    reasoning: str = Field(description="Brief explanation of the decision")

    @field_validator("score", mode="before")
    @classmethod
    def _score_must_be_number(cls, value: Any) -> Any:
        # bool is an int subclass; json true must not pass as a score
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ValueError(f"score must be a number, got {type(value).__name__}")
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError("score must be finite")
        if not 0 <= value <= 100:
            raise ValueError(f"score must be between 0 and 100, got {value}")
        return value

    @field_validator("reasoning", mode="before")
    @classmethod
    def _reasoning_must_be_text(cls, value: Any) -> Any:
        if not isinstance(value, str):
            raise ValueError(f"reasoning must be a string, got {type(value).__name__}")
        if not value.strip():
            raise ValueError("reasoning must not be empty")
        return value


class ConnectionCheckSchema(BaseModel):
    """Looser contract used by the connectivity test."""

    model_config = ConfigDict(extra="ignore")

    message: str | None = None
    model: str | None = None

    @field_validator("message", "model", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class AnalysisResult(BaseModel):
    """Final meaningfulness judgment for one diff. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    score: int | float
    is_meaningful: bool
    reasoning: str
    analyzed_at: datetime = Field(default_factory=utc_now)
    model: str

    def to_payload(self) -> dict[str, Any]:
        """Outbound representation shared with storage and senders."""
        return {
            "meaningfulChangeScore": self.score,
            "isMeaningfulChange": self.is_meaningful,
            "reasoning": self.reasoning,
            "analyzedAt": self.analyzed_at.isoformat(),
            "model": self.model,
        }


@dataclass(frozen=True)
class UpstreamRequest:
    """Provider-specific HTTP request. Built without side effects."""

    url: str
    headers: dict[str, str]
    body: dict[str, Any]
    dialect: str
    purpose: AnalysisPurpose = AnalysisPurpose.ANALYSIS

    def __repr__(self) -> str:
        return (
            f"UpstreamRequest(url={self.url!r}, dialect={self.dialect!r}, "
            f"purpose={self.purpose.value!r}, headers={redact_headers(self.headers)!r})"
        )


@dataclass(frozen=True)
class UpstreamResponse:
    """Status code and raw body text of an upstream call."""

    status_code: int
    body: str
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
