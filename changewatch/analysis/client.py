"""
HTTP client for OpenAI-compatible provider APIs.

Sends an ``UpstreamRequest`` and hands back status + raw body. Status checks
and body decoding belong to the response parser. There are no retries: a
failed call fails the run.
"""

from __future__ import annotations

import requests

from changewatch.analysis.errors import TransportError
from changewatch.analysis.models import UpstreamRequest, UpstreamResponse
from changewatch.config import AI_HTTP_TIMEOUT_SECONDS
from changewatch.observability.logging import get_logger
from changewatch.observability.telemetry import counter, time_block

logger = get_logger(__name__)


class AIClient:
    """Synchronous POST-JSON client. Blocks the calling run until a response arrives."""

    def __init__(self, timeout: float | None = AI_HTTP_TIMEOUT_SECONDS):
        self.timeout = timeout

    def send(self, request: UpstreamRequest) -> UpstreamResponse:
        """
        POST the request body as JSON.

        Raises:
            TransportError: Connection, DNS, TLS or timeout failure
        """
        logger.debug("Calling %r", request)
        try:
            with time_block(f"ai.{request.dialect}.latency"):
                response = requests.post(
                    request.url,
                    json=request.body,
                    headers=request.headers,
                    timeout=self.timeout,
                )
        except requests.exceptions.RequestException as e:
            counter(f"ai.{request.dialect}.transport_error")
            logger.warning("AI request to %s failed: %s", request.url, e)
            raise TransportError(f"AI request failed: {e}", cause=e) from e

        counter(f"ai.{request.dialect}.status_{response.status_code}")
        return UpstreamResponse(
            status_code=response.status_code,
            body=response.text,
            headers=dict(response.headers),
        )


# Singleton instance
_client: AIClient | None = None


def get_ai_client() -> AIClient:
    """Get or create singleton AIClient instance."""
    global _client
    if _client is None:
        _client = AIClient()
    return _client
