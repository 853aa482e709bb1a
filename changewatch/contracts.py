"""
Collaborator contracts for the analysis pipeline.

Storage, scheduling and HTTP are external to the pipeline. These Protocols
define the minimal operations it needs so any backend can be plugged in;
``changewatch.storage.memory.InMemoryStore`` implements every store port.
"""

from __future__ import annotations

from typing import Any, Protocol

from changewatch.analysis.models import AnalysisResult, UpstreamRequest, UpstreamResponse
from changewatch.storage.models import EmailConfig, ScrapeRecord, UserSettings, Website


class SettingsStore(Protocol):
    """Settings lookup by user id."""

    def get_user_settings(self, user_id: str) -> UserSettings | None:
        ...


class ResultStore(Protocol):
    """Scrape results and their analyses, keyed by result id."""

    def get_scrape_record(self, result_id: str) -> ScrapeRecord | None:
        ...

    def save_analysis(self, result_id: str, analysis: AnalysisResult) -> None:
        ...


class WebsiteStore(Protocol):
    """Website lookup scoped to its owner."""

    def get_website(self, website_id: str, user_id: str) -> Website | None:
        ...


class EmailConfigStore(Protocol):
    """Notification email lookup by user id."""

    def get_email_config(self, user_id: str) -> EmailConfig | None:
        ...


class TaskQueuePort(Protocol):
    """Deferred-task enqueue primitive."""

    def enqueue(self, kind: str, payload: dict[str, Any], delay: float = 0.0) -> str:
        ...


class HTTPClient(Protocol):
    """Sends one upstream AI request."""

    def send(self, request: UpstreamRequest) -> UpstreamResponse:
        ...
