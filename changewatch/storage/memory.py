"""
In-memory implementation of every store port.

Backs the development API server and the test suite. Analyses are
write-once per result id: each diff gets its own result.
"""

from __future__ import annotations

import threading

from changewatch.analysis.models import AnalysisResult
from changewatch.observability.logging import get_logger
from changewatch.storage.models import EmailConfig, ScrapeRecord, UserSettings, Website

logger = get_logger(__name__)


class DuplicateResultError(RuntimeError):
    """An analysis was already stored for this result id."""

    pass


class UnknownResultError(KeyError):
    """No scrape record exists for this result id."""

    pass


class InMemoryStore:
    """Thread-safe dict-backed store for settings, websites, results and email config."""

    def __init__(self):
        self._lock = threading.Lock()
        self._settings: dict[str, UserSettings] = {}
        self._websites: dict[str, Website] = {}
        self._scrapes: dict[str, ScrapeRecord] = {}
        self._analyses: dict[str, AnalysisResult] = {}
        self._email_configs: dict[str, EmailConfig] = {}

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def put_user_settings(self, settings: UserSettings) -> None:
        with self._lock:
            self._settings[settings.user_id] = settings

    def put_website(self, website: Website) -> None:
        with self._lock:
            self._websites[website.id] = website

    def put_scrape_record(self, record: ScrapeRecord) -> None:
        with self._lock:
            self._scrapes[record.id] = record

    def put_email_config(self, user_id: str, config: EmailConfig) -> None:
        with self._lock:
            self._email_configs[user_id] = config

    # -------------------------------------------------------------------------
    # Ports
    # -------------------------------------------------------------------------

    def get_user_settings(self, user_id: str) -> UserSettings | None:
        with self._lock:
            return self._settings.get(user_id)

    def get_website(self, website_id: str, user_id: str) -> Website | None:
        with self._lock:
            website = self._websites.get(website_id)
        # Websites are only visible to their owner
        if website is None or website.user_id != user_id:
            return None
        return website

    def get_scrape_record(self, result_id: str) -> ScrapeRecord | None:
        with self._lock:
            return self._scrapes.get(result_id)

    def get_email_config(self, user_id: str) -> EmailConfig | None:
        with self._lock:
            return self._email_configs.get(user_id)

    def save_analysis(self, result_id: str, analysis: AnalysisResult) -> None:
        """
        Attach an analysis to a scrape result.

        Raises:
            UnknownResultError: No scrape record for result_id
            DuplicateResultError: Result already analyzed
        """
        with self._lock:
            if result_id not in self._scrapes:
                raise UnknownResultError(f"Scrape result not found: {result_id}")
            if result_id in self._analyses:
                raise DuplicateResultError(f"Analysis already stored for {result_id}")
            self._analyses[result_id] = analysis
        logger.debug("Stored analysis for %s", result_id)

    def get_analysis(self, result_id: str) -> AnalysisResult | None:
        with self._lock:
            return self._analyses.get(result_id)
