"""
Unit tests for the analysis-and-dispatch pipeline.

The AI client and the task queue are faked; the store is the in-memory one.
"""

from __future__ import annotations

import logging

import pytest

from changewatch.analysis.errors import (
    InvalidSchemaError,
    ParseError,
    TransportError,
    UpstreamError,
)
from changewatch.analysis.models import UpstreamResponse
from changewatch.notifications.models import EMAIL_TASK, WEBHOOK_TASK, NotificationPreference
from changewatch.observability.telemetry import get_counter
from changewatch.pipeline import AnalysisInvocation, AnalysisPipeline, PipelineState
from changewatch.storage.memory import InMemoryStore
from changewatch.storage.models import UserSettings, Website
from tests.helpers import (
    RESULT_ID,
    USER_ID,
    WEBSITE_ID,
    FakeAIClient,
    RecordingQueue,
    chat_body,
    responses_body,
)


def make_pipeline(store: InMemoryStore, queue, client) -> AnalysisPipeline:
    return AnalysisPipeline(
        settings_store=store,
        result_store=store,
        website_store=store,
        email_store=store,
        queue=queue,
        client=client,
    )


class TestAnalysisFlow:
    def test_meaningful_change_emails_user(self, store, invocation):
        store.put_user_settings(
            UserSettings(
                user_id=USER_ID,
                ai_analysis_enabled=True,
                ai_api_key="sk-test-123",
                ai_model="gpt-4o-mini",
                ai_meaningful_change_threshold=70,
                email_only_if_meaningful=True,
            )
        )
        store.put_website(
            Website(
                id=WEBSITE_ID,
                user_id=USER_ID,
                name="Example Shop",
                url="https://shop.example.com",
                notification_preference=NotificationPreference.EMAIL,
            )
        )
        client = FakeAIClient.ok(chat_body({"score": 85, "reasoning": "Price increased"}))
        queue = RecordingQueue()

        outcome = make_pipeline(store, queue, client).run(invocation)

        assert outcome.state is PipelineState.NOTIFIED
        assert outcome.analysis.score == 85
        assert outcome.analysis.is_meaningful is True
        assert outcome.analysis.model == "gpt-4o-mini"
        assert store.get_analysis(RESULT_ID) == outcome.analysis

        [(kind, payload, delay)] = queue.enqueued
        assert kind == EMAIL_TASK
        assert delay == 0
        assert payload["email"] == "owner@example.com"
        assert payload["aiAnalysis"]["meaningfulChangeScore"] == 85
        assert payload["aiAnalysis"]["isMeaningfulChange"] is True
        assert get_counter("pipeline.analyzed") == 1
        assert get_counter("pipeline.notified") == 1

    def test_request_sent_to_message_endpoint(self, store, invocation):
        client = FakeAIClient.ok(chat_body({"score": 10, "reasoning": "Timestamp"}))

        make_pipeline(store, RecordingQueue(), client).run(invocation)

        [request] = client.requests
        assert request.url == "https://api.openai.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test-123"
        assert "Price changed from $10 to $12" in request.body["messages"][1]["content"]

    def test_reasoning_model_path(self, store, invocation):
        store.put_user_settings(
            UserSettings(
                user_id=USER_ID,
                ai_analysis_enabled=True,
                ai_api_key="sk-test-123",
                ai_model="gpt-5-mini",
                ai_base_url="https://proxy.local/v1/",
            )
        )
        client = FakeAIClient.ok(
            responses_body({"score": 90, "reasoning": "New plan"}, convenience=False)
        )

        outcome = make_pipeline(store, RecordingQueue(), client).run(invocation)

        assert outcome.state is PipelineState.NOTIFIED
        assert outcome.analysis.model == "gpt-5-mini"
        assert client.requests[0].url == "https://proxy.local/v1/responses"
        assert client.requests[0].body["reasoning"] == {"effort": "medium"}

    def test_not_meaningful_still_persists_and_routes(self, store, invocation):
        client = FakeAIClient.ok(chat_body({"score": 12, "reasoning": "Rotating banner"}))
        queue = RecordingQueue()

        outcome = make_pipeline(store, queue, client).run(invocation)

        assert outcome.analysis.is_meaningful is False
        assert store.get_analysis(RESULT_ID) is not None
        # Fixture website routes to both channels with no meaningful-only filters
        assert sorted(queue.kinds()) == sorted([WEBHOOK_TASK, EMAIL_TASK])

    def test_default_threshold_applies(self, store, invocation):
        store.put_user_settings(
            UserSettings(user_id=USER_ID, ai_analysis_enabled=True, ai_api_key="sk-test-123")
        )
        client = FakeAIClient.ok(chat_body({"score": 70, "reasoning": "Borderline"}))

        outcome = make_pipeline(store, RecordingQueue(), client).run(invocation)

        assert outcome.analysis.is_meaningful is True
        assert outcome.analysis.model == "gpt-4o-mini"


class TestSkipped:
    @pytest.mark.parametrize(
        "settings",
        [
            UserSettings(user_id=USER_ID, ai_analysis_enabled=False, ai_api_key="sk-test-123"),
            UserSettings(user_id=USER_ID, ai_analysis_enabled=True, ai_api_key=None),
            UserSettings(user_id=USER_ID, ai_analysis_enabled=True, ai_api_key=""),
        ],
    )
    def test_disabled_or_keyless_makes_no_request(self, store, invocation, settings):
        store.put_user_settings(settings)
        client = FakeAIClient()
        queue = RecordingQueue()

        outcome = make_pipeline(store, queue, client).run(invocation)

        assert outcome.state is PipelineState.ANALYSIS_SKIPPED
        assert client.requests == []
        assert queue.enqueued == []
        assert store.get_analysis(RESULT_ID) is None
        assert get_counter("pipeline.analysis_skipped") == 1
        assert get_counter("pipeline.analyzed") == 0

    def test_unknown_user(self, store, diff):
        invocation = AnalysisInvocation(
            userId="someone-else",
            resultId=RESULT_ID,
            websiteName="Example Shop",
            websiteUrl="https://shop.example.com",
            diff=diff,
        )

        outcome = make_pipeline(store, RecordingQueue(), FakeAIClient()).run(invocation)

        assert outcome.state is PipelineState.ANALYSIS_SKIPPED


class TestFailures:
    @pytest.mark.parametrize(
        ("response", "error_type"),
        [
            (UpstreamResponse(status_code=401, body='{"error": "bad key"}'), UpstreamError),
            (UpstreamResponse(status_code=200, body=chat_body("not json")), ParseError),
            (
                UpstreamResponse(status_code=200, body=chat_body({"score": "high", "reasoning": "x"})),
                InvalidSchemaError,
            ),
            (TransportError("connection refused"), TransportError),
        ],
    )
    def test_failure_persists_nothing_and_dispatches_nothing(
        self, store, invocation, response, error_type
    ):
        queue = RecordingQueue()

        outcome = make_pipeline(store, queue, FakeAIClient(response)).run(invocation)

        assert outcome.state is PipelineState.ANALYSIS_FAILED
        assert isinstance(outcome.error, error_type)
        assert outcome.analysis is None
        assert store.get_analysis(RESULT_ID) is None
        assert queue.enqueued == []
        assert get_counter(f"pipeline.analysis_failed.{error_type.__name__}") == 1
        assert get_counter("pipeline.analysis_failed") == 1

    def test_persistence_failure_blocks_dispatch(self, store, invocation):
        class FailingResultStore:
            def get_scrape_record(self, result_id):
                return store.get_scrape_record(result_id)

            def save_analysis(self, result_id, analysis):
                raise ConnectionError("database unavailable")

        queue = RecordingQueue()
        pipeline = AnalysisPipeline(
            settings_store=store,
            result_store=FailingResultStore(),
            website_store=store,
            email_store=store,
            queue=queue,
            client=FakeAIClient.ok(chat_body({"score": 90, "reasoning": "New plan"})),
        )

        outcome = pipeline.run(invocation)

        assert outcome.state is PipelineState.ANALYSIS_FAILED
        assert isinstance(outcome.error, ConnectionError)
        assert queue.enqueued == []

    def test_second_run_for_same_result_fails(self, store, invocation):
        body = chat_body({"score": 90, "reasoning": "New plan"})
        client = FakeAIClient(
            UpstreamResponse(status_code=200, body=body),
            UpstreamResponse(status_code=200, body=body),
        )
        queue = RecordingQueue()
        pipeline = make_pipeline(store, queue, client)

        first = pipeline.run(invocation)
        second = pipeline.run(invocation)

        assert first.state is PipelineState.NOTIFIED
        assert second.state is PipelineState.ANALYSIS_FAILED
        assert len(queue.enqueued) == 2


class TestOrdering:
    def test_persist_happens_before_dispatch(self, store, invocation):
        events = []

        class ObservingQueue(RecordingQueue):
            def enqueue(self, kind, payload, delay=0.0):
                events.append(("enqueue", store.get_analysis(RESULT_ID) is not None))
                return super().enqueue(kind, payload, delay)

        client = FakeAIClient.ok(chat_body({"score": 90, "reasoning": "New plan"}))

        make_pipeline(store, ObservingQueue(), client).run(invocation)

        assert events
        assert all(persisted for _, persisted in events)


class TestNotificationSkipped:
    def test_preference_none(self, store, invocation):
        store.put_website(
            Website(
                id=WEBSITE_ID,
                user_id=USER_ID,
                name="Example Shop",
                url="https://shop.example.com",
                notification_preference=NotificationPreference.NONE,
            )
        )
        client = FakeAIClient.ok(chat_body({"score": 95, "reasoning": "New plan"}))

        outcome = make_pipeline(store, RecordingQueue(), client).run(invocation)

        assert outcome.state is PipelineState.NOTIFICATION_SKIPPED
        assert store.get_analysis(RESULT_ID) is not None
        assert get_counter("pipeline.notification_skipped") == 1
        assert get_counter("pipeline.notified") == 0

    def test_website_owned_by_another_user(self, store, invocation):
        store.put_website(
            Website(
                id=WEBSITE_ID,
                user_id="other-user",
                name="Example Shop",
                url="https://shop.example.com",
                notification_preference=NotificationPreference.BOTH,
                webhook_url="https://hooks.example.com/changes",
            )
        )
        queue = RecordingQueue()
        client = FakeAIClient.ok(chat_body({"score": 95, "reasoning": "New plan"}))

        outcome = make_pipeline(store, queue, client).run(invocation)

        assert outcome.state is PipelineState.NOTIFICATION_SKIPPED
        assert outcome.routing.skip_reason == "website not found"
        assert queue.enqueued == []

    def test_all_channels_fail_to_enqueue(self, store, invocation):
        queue = RecordingQueue(fail_kinds={WEBHOOK_TASK, EMAIL_TASK})
        client = FakeAIClient.ok(chat_body({"score": 95, "reasoning": "New plan"}))

        outcome = make_pipeline(store, queue, client).run(invocation)

        assert outcome.state is PipelineState.NOTIFICATION_SKIPPED
        assert len(outcome.routing.failures) == 2
        assert store.get_analysis(RESULT_ID) is not None

    def test_outcome_states_are_terminal(self, store, invocation):
        client = FakeAIClient.ok(chat_body({"score": 95, "reasoning": "New plan"}))

        outcome = make_pipeline(store, RecordingQueue(), client).run(invocation)

        assert outcome.state.is_terminal


class TestFailureLogging:
    @pytest.mark.parametrize(
        ("response", "raw_text"),
        [
            (UpstreamResponse(status_code=500, body="E" * 5000), "E" * 5000),
            (UpstreamResponse(status_code=200, body=chat_body("N" * 5000)), "N" * 5000),
        ],
    )
    def test_raw_upstream_text_is_logged_clipped_and_once(
        self, store, invocation, caplog, response, raw_text
    ):
        with caplog.at_level(logging.INFO):
            outcome = make_pipeline(store, RecordingQueue(), FakeAIClient(response)).run(invocation)

        assert outcome.state is PipelineState.ANALYSIS_FAILED
        assert raw_text not in caplog.text
        assert max(len(record.getMessage()) for record in caplog.records) < 1500

        errors = [record for record in caplog.records if record.levelno >= logging.ERROR]
        assert len(errors) == 1
        assert "(+4500 chars)" in errors[0].getMessage()
        assert type(outcome.error).__name__ in errors[0].getMessage()
