"""
Request builder for upstream AI calls.

Turns an ``AIConfig`` plus prompt content into a provider-specific
``UpstreamRequest``. No side effects: nothing is sent from here.
"""

from __future__ import annotations

from changewatch.analysis.dialects import select_dialect
from changewatch.analysis.models import AIConfig, AnalysisPurpose, DiffPayload, UpstreamRequest
from changewatch.analysis.prompts import (
    CONNECTION_TEST_INPUT,
    CONNECTION_TEST_INSTRUCTIONS,
    build_analysis_input,
)


def auth_headers(api_key: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def build_request(
    config: AIConfig,
    instructions: str,
    user_content: str,
    purpose: AnalysisPurpose,
) -> UpstreamRequest:
    """
    Build the request for whichever dialect the configured model speaks.

    Args:
        config: Provider settings (key, base URL, model)
        instructions: System prompt
        user_content: Per-request user message
        purpose: Selects effort / token budget, never the request structure

    Returns:
        UpstreamRequest with target URL, headers and JSON body
    """
    dialect = select_dialect(config.model)
    return UpstreamRequest(
        url=dialect.endpoint(config.base_url),
        headers=auth_headers(config.api_key),
        body=dialect.build_body(config.model, instructions, user_content, purpose),
        dialect=dialect.name,
        purpose=purpose,
    )


def build_analysis_request(
    config: AIConfig,
    diff: DiffPayload,
    website_name: str,
    website_url: str,
) -> UpstreamRequest:
    """Request asking the model to score one diff."""
    return build_request(
        config,
        instructions=config.instructions,
        user_content=build_analysis_input(website_name, website_url, diff.text),
        purpose=AnalysisPurpose.ANALYSIS,
    )


def build_connection_test_request(config: AIConfig) -> UpstreamRequest:
    """Small request that only proves credentials and dialect plumbing work."""
    return build_request(
        config,
        instructions=CONNECTION_TEST_INSTRUCTIONS,
        user_content=CONNECTION_TEST_INPUT,
        purpose=AnalysisPurpose.CONNECTION_TEST,
    )
