"""Shared request dependencies: the store, queue and pipeline held on app.state."""

from __future__ import annotations

from typing import Any

from fastapi import Request

from changewatch.contracts import HTTPClient
from changewatch.notifications.models import EMAIL_TASK, EMAIL_TEST_TASK, WEBHOOK_TASK
from changewatch.notifications.queue import TaskHandler, TaskQueue
from changewatch.observability.logging import get_logger
from changewatch.pipeline import AnalysisPipeline
from changewatch.storage.memory import InMemoryStore

logger = get_logger(__name__)


def logging_sender(kind: str) -> TaskHandler:
    """Handler that records the hand-off; used when no real sender is registered."""

    def _handle(payload: dict[str, Any]) -> None:
        logger.info(
            "Dispatch %s for %s (score=%s)",
            kind,
            payload.get("websiteName") or payload.get("email"),
            (payload.get("aiAnalysis") or {}).get("meaningfulChangeScore"),
        )

    return _handle


def register_default_senders(queue: TaskQueue) -> None:
    for kind in (WEBHOOK_TASK, EMAIL_TASK, EMAIL_TEST_TASK):
        if not queue.has_handler(kind):
            queue.register(kind, logging_sender(kind))


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def get_queue(request: Request) -> TaskQueue:
    return request.app.state.queue


def get_pipeline(request: Request) -> AnalysisPipeline:
    return request.app.state.pipeline


def get_client(request: Request) -> HTTPClient:
    return request.app.state.client
