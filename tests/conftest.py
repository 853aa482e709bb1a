"""
Pytest configuration for changewatch tests

Provides a seeded in-memory store, the records it is seeded with, and a
recording task queue. Fakes and body builders live in tests/helpers.py.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from changewatch.analysis.models import DiffPayload
from changewatch.notifications.models import NotificationPreference
from changewatch.observability.telemetry import reset_counters, reset_latencies
from changewatch.pipeline import AnalysisInvocation
from changewatch.storage.memory import InMemoryStore
from changewatch.storage.models import EmailConfig, ScrapeRecord, UserSettings, Website
from tests.helpers import RESULT_ID, USER_ID, WEBSITE_ID, RecordingQueue


@pytest.fixture(autouse=True)
def _reset_telemetry():
    reset_counters()
    reset_latencies()
    yield


@pytest.fixture
def user_settings() -> UserSettings:
    return UserSettings(
        user_id=USER_ID,
        ai_analysis_enabled=True,
        ai_api_key="sk-test-123",
        ai_model="gpt-4o-mini",
        ai_meaningful_change_threshold=70,
    )


@pytest.fixture
def website() -> Website:
    return Website(
        id=WEBSITE_ID,
        user_id=USER_ID,
        name="Example Shop",
        url="https://shop.example.com",
        notification_preference=NotificationPreference.BOTH,
        webhook_url="https://hooks.example.com/changes",
    )


@pytest.fixture
def scrape_record() -> ScrapeRecord:
    return ScrapeRecord(
        id=RESULT_ID,
        website_id=WEBSITE_ID,
        title="Pricing",
        description="Plans and pricing",
        markdown="# Pricing\nPro plan: $12",
        scraped_at=datetime(2026, 10, 1, 12, 0, tzinfo=UTC),
    )


@pytest.fixture
def store(user_settings, website, scrape_record) -> InMemoryStore:
    store = InMemoryStore()
    store.put_user_settings(user_settings)
    store.put_website(website)
    store.put_scrape_record(scrape_record)
    store.put_email_config(USER_ID, EmailConfig(email="owner@example.com", is_verified=True))
    return store


@pytest.fixture
def diff() -> DiffPayload:
    return DiffPayload(
        text="Price changed from $10 to $12",
        json={"changes": [{"type": "modified", "old": "$10", "new": "$12"}]},
    )


@pytest.fixture
def invocation(diff) -> AnalysisInvocation:
    return AnalysisInvocation(
        user_id=USER_ID,
        result_id=RESULT_ID,
        website_name="Example Shop",
        website_url="https://shop.example.com",
        diff=diff,
    )


@pytest.fixture
def queue() -> RecordingQueue:
    return RecordingQueue()
