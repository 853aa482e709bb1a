"""Prompts for change analysis and the provider connectivity check."""

from __future__ import annotations

DEFAULT_SYSTEM_PROMPT = """You are an AI assistant specialized in analyzing website changes. Your task is to determine if a detected change is "meaningful" or just noise.

Meaningful changes include:
- Content updates (text, images, prices)
- New features or sections
- Important announcements
- Product availability changes
- Policy updates

NOT meaningful (ignore these):
- Rotating banners/carousels
- Dynamic timestamps
- View counters
- Session IDs
- Random promotional codes
- Cookie consent banners
- Advertising content
- Social media feed updates

Analyze the provided diff and return a JSON response with:
{
  "score": 0-100 (how meaningful the change is),
  "isMeaningful": true/false,
  "reasoning": "Brief explanation of your decision"
}"""

ANALYSIS_INPUT_TEMPLATE = """Website: {website_name} ({website_url})

Changes detected:
{diff_text}

Please analyze these changes and determine if they are meaningful."""

CONNECTION_TEST_INSTRUCTIONS = (
    "You are a helpful assistant. Please respond with a simple JSON object."
)

CONNECTION_TEST_INPUT = (
    "Please respond with a JSON object containing: "
    '{ "status": "success", "message": "Connection successful", '
    '"model": "<the model you are>" }'
)


def build_analysis_input(website_name: str, website_url: str, diff_text: str) -> str:
    """User content for an analysis request."""
    return ANALYSIS_INPUT_TEMPLATE.format(
        website_name=website_name,
        website_url=website_url,
        diff_text=diff_text,
    )
