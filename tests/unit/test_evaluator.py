"""
Unit tests for payload validation and the meaningfulness decision.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from changewatch.analysis.errors import InvalidSchemaError
from changewatch.analysis.evaluator import (
    evaluate_analysis,
    is_meaningful,
    validate_analysis_payload,
    validate_connection_payload,
)
from changewatch.analysis.models import AIConfig

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=UTC)


@pytest.fixture
def config() -> AIConfig:
    return AIConfig(api_key="sk-test-123", model="gpt-4o-mini", meaningful_change_threshold=70)


class TestThreshold:
    @pytest.mark.parametrize(
        ("score", "threshold", "expected"),
        [
            (70, 70, True),
            (69.9, 70, False),
            (100, 70, True),
            (0, 0, True),
            (0, 1, False),
            (99, 100, False),
        ],
    )
    def test_inclusive_comparison(self, score, threshold, expected):
        assert is_meaningful(score, threshold) is expected


class TestEvaluateAnalysis:
    def test_builds_result(self, config):
        result = evaluate_analysis({"score": 85, "reasoning": "Price increased"}, config, now=NOW)

        assert result.score == 85
        assert result.is_meaningful is True
        assert result.reasoning == "Price increased"
        assert result.analyzed_at == NOW
        assert result.model == "gpt-4o-mini"

    def test_integer_score_stays_integer(self, config):
        result = evaluate_analysis({"score": 85, "reasoning": "Price increased"}, config, now=NOW)

        assert type(result.score) is int
        assert json.dumps(result.to_payload()["meaningfulChangeScore"]) == "85"

    def test_float_score_stays_float(self, config):
        result = evaluate_analysis({"score": 72.5, "reasoning": "Copy edit"}, config, now=NOW)

        assert result.score == 72.5
        assert result.is_meaningful is True

    def test_score_equal_to_threshold_is_meaningful(self, config):
        result = evaluate_analysis({"score": 70, "reasoning": "Borderline"}, config)

        assert result.is_meaningful is True

    def test_model_flag_is_ignored(self, config):
        low = evaluate_analysis(
            {"score": 20, "isMeaningful": True, "reasoning": "Timestamp only"}, config
        )
        high = evaluate_analysis(
            {"score": 90, "isMeaningful": False, "reasoning": "New product"}, config
        )

        assert low.is_meaningful is False
        assert high.is_meaningful is True

    def test_records_configured_model_not_echoed_one(self, config):
        result = evaluate_analysis(
            {"score": 50, "reasoning": "Minor", "model": "something-else"}, config
        )

        assert result.model == "gpt-4o-mini"

    def test_timestamp_defaults_to_now(self, config):
        result = evaluate_analysis({"score": 50, "reasoning": "Minor"}, config)

        assert result.analyzed_at.tzinfo is not None

    def test_payload_keys(self, config):
        result = evaluate_analysis({"score": 85, "reasoning": "Price increased"}, config, now=NOW)

        assert result.to_payload() == {
            "meaningfulChangeScore": 85,
            "isMeaningfulChange": True,
            "reasoning": "Price increased",
            "analyzedAt": "2026-10-19T09:30:00+00:00",
            "model": "gpt-4o-mini",
        }


class TestInvalidSchema:
    @pytest.mark.parametrize(
        "payload",
        [
            {"reasoning": "No score"},
            {"score": 80},
            {"score": "80", "reasoning": "String score"},
            {"score": True, "reasoning": "Bool score"},
            {"score": None, "reasoning": "Null score"},
            {"score": 80, "reasoning": ""},
            {"score": 80, "reasoning": "   "},
            {"score": 80, "reasoning": 42},
            {"score": -1, "reasoning": "Too low"},
            {"score": 101, "reasoning": "Too high"},
            {"score": float("nan"), "reasoning": "Not a number"},
            {"score": 100.5, "reasoning": "Just over"},
        ],
    )
    def test_rejects_bad_fields(self, payload, config):
        with pytest.raises(InvalidSchemaError) as exc_info:
            evaluate_analysis(payload, config)

        assert exc_info.value.payload == payload
        assert str(exc_info.value).startswith("Invalid AI response format")

    @pytest.mark.parametrize("payload", [[1, 2], "text", 85, None])
    def test_rejects_non_objects(self, payload):
        with pytest.raises(InvalidSchemaError):
            validate_analysis_payload(payload)

    def test_accepts_float_scores(self):
        schema = validate_analysis_payload({"score": 72.5, "reasoning": "Copy edit"})

        assert schema.score == 72.5


class TestConnectionPayload:
    def test_message_and_model_are_optional(self):
        schema = validate_connection_payload({"status": "success"})

        assert schema.message is None
        assert schema.model is None

    def test_values_are_stringified(self):
        schema = validate_connection_payload({"message": 42, "model": "gpt-4o-mini"})

        assert schema.message == "42"
        assert schema.model == "gpt-4o-mini"

    def test_rejects_non_objects(self):
        with pytest.raises(InvalidSchemaError):
            validate_connection_payload(["ok"])
