"""Fakes and response-body builders shared by the test suite."""

from __future__ import annotations

import json
from typing import Any

from changewatch.analysis.errors import TransportError
from changewatch.analysis.models import UpstreamRequest, UpstreamResponse

USER_ID = "user-1"
RESULT_ID = "scrape-1"
WEBSITE_ID = "site-1"


def chat_body(content: Any) -> str:
    """Chat Completions success body whose message content is `content`."""
    if not isinstance(content, str) and content is not None:
        content = json.dumps(content)
    return json.dumps(
        {
            "id": "chatcmpl-1",
            "model": "gpt-4o-mini-2024-07-18",
            "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        }
    )


def responses_body(content: Any, convenience: bool = True) -> str:
    """Responses API success body, with or without the top-level output_text."""
    text = content if isinstance(content, str) else json.dumps(content)
    data: dict[str, Any] = {
        "id": "resp_1",
        "output": [
            {"type": "reasoning", "summary": []},
            {
                "type": "message",
                "content": [{"type": "output_text", "text": text, "annotations": []}],
            },
        ],
    }
    if convenience:
        data["output_text"] = text
    return json.dumps(data)


class FakeAIClient:
    """Returns canned responses and records every request sent."""

    def __init__(self, *responses: UpstreamResponse | Exception):
        self.responses = list(responses)
        self.requests: list[UpstreamRequest] = []

    def send(self, request: UpstreamRequest) -> UpstreamResponse:
        self.requests.append(request)
        if not self.responses:
            raise TransportError("no canned response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @classmethod
    def ok(cls, body: str) -> FakeAIClient:
        return cls(UpstreamResponse(status_code=200, body=body))


class RecordingQueue:
    """Task queue fake that records enqueues instead of running them."""

    def __init__(self, fail_kinds: set[str] | None = None):
        self.enqueued: list[tuple[str, dict[str, Any], float]] = []
        self.fail_kinds = fail_kinds or set()

    def enqueue(self, kind: str, payload: dict[str, Any], delay: float = 0.0) -> str:
        if kind in self.fail_kinds:
            raise RuntimeError(f"queue unavailable for {kind}")
        self.enqueued.append((kind, payload, delay))
        return f"task-{len(self.enqueued)}"

    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.enqueued]
