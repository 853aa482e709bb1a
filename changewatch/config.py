"""Centralized configuration for the changewatch backend.

Typed constants for the AI analysis defaults, the dispatch queue and the API
server. Environment variable overrides use safe defaults so the pipeline runs
without extra env configuration.

The AI defaults are only consumed as field defaults of ``AIConfig``; code paths
below the pipeline read them from the config value passed into each run.
"""

from __future__ import annotations

import os


def _env(key: str, default: str) -> str:
    return os.getenv(key, default)


def _optional_float(key: str) -> float | None:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return None
    return float(raw)


# --- App ---
APP_NAME: str = _env("CHANGEWATCH_APP_NAME", "changewatch")
APP_VERSION: str = "0.1.0"
ENV: str = _env("CHANGEWATCH_ENV", "development")
LOG_LEVEL: str = _env("CHANGEWATCH_LOG_LEVEL", "INFO")

# --- API ---
API_HOST: str = _env("API_HOST", "0.0.0.0")
API_PORT: int = int(_env("API_PORT", "8000"))

# --- AI analysis defaults ---
DEFAULT_AI_BASE_URL: str = "https://api.openai.com/v1"
DEFAULT_AI_MODEL: str = "gpt-4o-mini"
DEFAULT_MEANINGFUL_CHANGE_THRESHOLD: int = 70

# Models whose identifier contains this substring speak the Responses API.
REASONING_MODEL_MARKER: str = "gpt-5"

# Unset means the pipeline imposes no timeout of its own.
AI_HTTP_TIMEOUT_SECONDS: float | None = _optional_float("CHANGEWATCH_AI_TIMEOUT")

# --- Request budgets ---
MESSAGE_TEMPERATURE: float = 0.3
ANALYSIS_MAX_COMPLETION_TOKENS: int = 500
CONNECTION_TEST_MAX_COMPLETION_TOKENS: int = 100
ANALYSIS_REASONING_EFFORT: str = "medium"
CONNECTION_TEST_REASONING_EFFORT: str = "low"

# --- Dispatch ---
DISPATCH_MAX_WORKERS: int = int(_env("CHANGEWATCH_DISPATCH_MAX_WORKERS", "4"))

# Raw model output is clipped to this many characters in log lines.
LOG_RAW_TEXT_CHARS: int = 500


def is_production() -> bool:
    """Check if running in production"""
    return ENV == "production"
