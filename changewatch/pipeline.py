"""
Analysis-and-dispatch pipeline for one detected diff.

The pipeline enforces a strict order:
1) Load the user's settings; skip quietly if analysis is off or keyless
2) Build the provider request and call the API
3) Parse the response and validate/evaluate the payload
4) Persist the AnalysisResult
5) Only after persistence succeeds, route notifications

States:

    RECEIVED -> ANALYZING -> ANALYZED | ANALYSIS_SKIPPED | ANALYSIS_FAILED
    ANALYZED -> NOTIFIED | NOTIFICATION_SKIPPED

Every run is independent and best-effort: failures are logged and reported in
the returned outcome, never raised to the diff-ingestion caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from changewatch.analysis.client import get_ai_client
from changewatch.analysis.dialects import select_dialect
from changewatch.analysis.errors import (
    AnalysisError,
    ConfigurationError,
    InvalidSchemaError,
    MalformedResponseError,
    ParseError,
    UpstreamError,
)
from changewatch.analysis.evaluator import evaluate_analysis
from changewatch.analysis.models import AIConfig, AnalysisResult, DiffPayload
from changewatch.analysis.request_builder import build_analysis_request
from changewatch.analysis.response_parser import parse_response
from changewatch.contracts import (
    EmailConfigStore,
    HTTPClient,
    ResultStore,
    SettingsStore,
    TaskQueuePort,
    WebsiteStore,
)
from changewatch.notifications.models import RoutingOutcome
from changewatch.notifications.router import NotificationRouter, RoutingContext
from changewatch.observability.logging import get_logger
from changewatch.observability.telemetry import counter, log_event, time_block
from changewatch.storage.models import UserSettings
from changewatch.utils.redaction import clip

logger = get_logger(__name__)


class PipelineState(str, Enum):
    """Lifecycle of one pipeline run."""

    RECEIVED = "received"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"  # Result persisted; routing not yet done
    ANALYSIS_SKIPPED = "analysis_skipped"  # Disabled or no API key (terminal)
    ANALYSIS_FAILED = "analysis_failed"  # Upstream/parse/schema/persist error (terminal)
    NOTIFIED = "notified"  # At least one dispatch task enqueued
    NOTIFICATION_SKIPPED = "notification_skipped"  # Router returned, nothing enqueued

    @property
    def is_terminal(self) -> bool:
        return self in (
            PipelineState.ANALYSIS_SKIPPED,
            PipelineState.ANALYSIS_FAILED,
            PipelineState.NOTIFIED,
            PipelineState.NOTIFICATION_SKIPPED,
        )


class AnalysisInvocation(BaseModel):
    """Inbound request to analyze one diff."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    result_id: str = Field(..., alias="resultId")
    website_name: str = Field(..., alias="websiteName")
    website_url: str = Field(..., alias="websiteUrl")
    diff: DiffPayload


@dataclass
class PipelineOutcome:
    """Where a run ended up and what it produced."""

    state: PipelineState
    analysis: AnalysisResult | None = None
    routing: RoutingOutcome | None = None
    error: AnalysisError | Exception | None = None


class AnalysisPipeline:
    """
    Controller sequencing request -> parse -> evaluate -> persist -> route.

    Collaborators are injected so any storage or queue backend can be used.
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        result_store: ResultStore,
        website_store: WebsiteStore,
        email_store: EmailConfigStore,
        queue: TaskQueuePort,
        client: HTTPClient | None = None,
    ):
        self.settings_store = settings_store
        self.result_store = result_store
        self.website_store = website_store
        self.client = client or get_ai_client()
        self.router = NotificationRouter(queue, email_store)

    def run(self, invocation: AnalysisInvocation) -> PipelineOutcome:
        """
        Run the pipeline for one diff. Never raises.

        Returns:
            PipelineOutcome with a terminal state
        """
        state = PipelineState.RECEIVED
        try:
            settings = self.settings_store.get_user_settings(invocation.user_id)
            config = self._ai_config(invocation.user_id, settings)
        except ConfigurationError as e:
            counter("pipeline.analysis_skipped")
            logger.info("%s (user %s)", e, invocation.user_id)
            return PipelineOutcome(PipelineState.ANALYSIS_SKIPPED, error=e)
        except Exception as e:
            counter("pipeline.analysis_failed")
            logger.exception("Settings lookup failed for user %s: %s", invocation.user_id, e)
            return PipelineOutcome(PipelineState.ANALYSIS_FAILED, error=e)

        state = PipelineState.ANALYZING
        try:
            analysis = self._analyze(invocation, config)
            self.result_store.save_analysis(invocation.result_id, analysis)
        except AnalysisError as e:
            self._log_analysis_failure(invocation, config, e)
            return PipelineOutcome(PipelineState.ANALYSIS_FAILED, error=e)
        except Exception as e:
            counter("pipeline.analysis_failed")
            logger.exception(
                "Error in AI analysis for %s (state=%s): %s", invocation.website_name, state.value, e
            )
            return PipelineOutcome(PipelineState.ANALYSIS_FAILED, error=e)

        state = PipelineState.ANALYZED
        counter("pipeline.analyzed")
        logger.info(
            "AI analysis complete for %s: Score %s, Meaningful: %s",
            invocation.website_name,
            analysis.score,
            analysis.is_meaningful,
        )
        log_event(
            "pipeline.analyzed",
            result_id=invocation.result_id,
            score=analysis.score,
            is_meaningful=analysis.is_meaningful,
            model=analysis.model,
        )

        # Persistence has succeeded; fan-out is strictly after it
        routing = self._notify(invocation, settings, analysis)
        if routing.tasks:
            counter("pipeline.notified")
            return PipelineOutcome(PipelineState.NOTIFIED, analysis=analysis, routing=routing)

        counter("pipeline.notification_skipped")
        return PipelineOutcome(
            PipelineState.NOTIFICATION_SKIPPED, analysis=analysis, routing=routing
        )

    def _ai_config(self, user_id: str, settings: UserSettings | None) -> AIConfig:
        if settings is None or not settings.analysis_ready:
            raise ConfigurationError(f"AI analysis not enabled or API key not set for user: {user_id}")
        return settings.to_ai_config()

    def _analyze(self, invocation: AnalysisInvocation, config: AIConfig) -> AnalysisResult:
        dialect = select_dialect(config.model)
        request = build_analysis_request(
            config, invocation.diff, invocation.website_name, invocation.website_url
        )
        with time_block("pipeline.analyze"):
            response = self.client.send(request)
        payload = parse_response(dialect, response)
        return evaluate_analysis(payload, config)

    def _log_analysis_failure(
        self, invocation: AnalysisInvocation, config: AIConfig, error: AnalysisError
    ) -> None:
        counter("pipeline.analysis_failed")
        counter(f"pipeline.analysis_failed.{type(error).__name__}")
        if isinstance(error, UpstreamError):
            detail = f"status={error.status} body={clip(error.body)}"
        elif isinstance(error, ParseError):
            detail = f"raw_text={clip(error.raw_text)}"
        elif isinstance(error, MalformedResponseError):
            detail = f"raw_body={clip(error.raw_body)}"
        elif isinstance(error, InvalidSchemaError):
            detail = f"payload={clip(repr(error.payload))}"
        else:
            detail = clip(str(error))
        logger.error(
            "AI analysis failed for %s (model=%s): %s %s",
            invocation.website_name,
            config.model,
            type(error).__name__,
            detail,
        )

    def _notify(
        self,
        invocation: AnalysisInvocation,
        settings: UserSettings,
        analysis: AnalysisResult,
    ) -> RoutingOutcome:
        try:
            scrape = self.result_store.get_scrape_record(invocation.result_id)
            if scrape is None:
                logger.error("Scrape result not found for notifications: %s", invocation.result_id)
                return RoutingOutcome.skipped("scrape result not found")

            website = self.website_store.get_website(scrape.website_id, invocation.user_id)
            if website is None:
                logger.warning("Website %s not found for notifications", scrape.website_id)
                return RoutingOutcome.skipped("website not found")

            context = RoutingContext(
                user_id=invocation.user_id,
                result_id=invocation.result_id,
                website_url=invocation.website_url,
                diff=invocation.diff,
                scrape=scrape,
            )
            return self.router.route(analysis, website, settings.filtering_prefs(), context)
        except Exception as e:
            counter("pipeline.notification_error")
            logger.exception("Error in AI-based notifications: %s", e)
            return RoutingOutcome.skipped(f"routing error: {e}")
