"""
Notification router - decides eligible channels and enqueues dispatch tasks.

Eligibility (a channel is only considered if the website preference includes it):

    webhook: webhook_url set AND (not webhook_only_if_meaningful OR is_meaningful)
    email:   (not email_only_if_meaningful OR is_meaningful) AND a verified
             address is on file (a missing/unverified address is a silent skip)

Each eligible channel gets exactly one zero-delay task. Channels are isolated:
a failure while preparing or enqueuing one never stops the other. The router
returns once enqueuing is done and never waits for delivery.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from changewatch.analysis.models import AnalysisResult, DiffPayload
from changewatch.contracts import EmailConfigStore, TaskQueuePort
from changewatch.notifications.models import (
    ChannelDecision,
    DispatchChannel,
    DispatchTask,
    FilteringPrefs,
    NotificationPreference,
    RoutingOutcome,
)
from changewatch.notifications.payloads import email_payload, webhook_payload
from changewatch.observability.logging import get_logger
from changewatch.observability.telemetry import counter, log_event
from changewatch.storage.models import ScrapeRecord, Website
from changewatch.utils.redaction import redact

logger = get_logger(__name__)


def decide_channels(
    preference: NotificationPreference,
    webhook_url: str | None,
    prefs: FilteringPrefs,
    is_meaningful: bool,
) -> ChannelDecision:
    """Pure eligibility table. Email verification is checked later, by the router."""
    webhook = (
        preference.includes_webhook
        and bool(webhook_url)
        and (not prefs.webhook_only_if_meaningful or is_meaningful)
    )
    email = preference.includes_email and (not prefs.email_only_if_meaningful or is_meaningful)
    return ChannelDecision(webhook=webhook, email=email)


@dataclass(frozen=True)
class RoutingContext:
    """Everything the senders need besides the analysis itself."""

    user_id: str
    result_id: str
    website_url: str
    diff: DiffPayload
    scrape: ScrapeRecord


class NotificationRouter:
    """Fans one AnalysisResult out to the eligible channels."""

    def __init__(self, queue: TaskQueuePort, email_store: EmailConfigStore):
        self.queue = queue
        self.email_store = email_store

    def route(
        self,
        analysis: AnalysisResult,
        website: Website,
        prefs: FilteringPrefs,
        context: RoutingContext,
    ) -> RoutingOutcome:
        """
        Enqueue dispatch tasks for one analyzed diff.

        Returns:
            RoutingOutcome listing eligible channels, enqueued tasks and
            per-channel failures
        """
        preference = NotificationPreference(website.notification_preference)
        if preference is NotificationPreference.NONE:
            counter("notifications.preference_none")
            return RoutingOutcome.skipped("notification preference is none")

        decision = decide_channels(
            preference, website.webhook_url, prefs, analysis.is_meaningful
        )
        outcome = RoutingOutcome(webhook_eligible=decision.webhook, email_eligible=decision.email)

        if decision.webhook:
            self._dispatch(
                outcome,
                DispatchChannel.WEBHOOK,
                lambda: webhook_payload(
                    website,
                    context.website_url,
                    context.result_id,
                    context.scrape,
                    context.diff,
                    analysis,
                ),
            )

        if decision.email:
            self._dispatch(
                outcome,
                DispatchChannel.EMAIL,
                lambda: self._email_payload(analysis, website, context),
            )

        logger.info(
            "AI-based notifications processed for %s. Webhook: %s, Email: %s",
            website.name,
            decision.webhook,
            decision.email,
        )
        log_event(
            "notifications.routed",
            result_id=context.result_id,
            preference=preference.value,
            is_meaningful=analysis.is_meaningful,
            enqueued=[channel.value for channel in outcome.enqueued_channels],
        )
        return outcome

    def _email_payload(
        self,
        analysis: AnalysisResult,
        website: Website,
        context: RoutingContext,
    ) -> dict[str, Any] | None:
        email_config = self.email_store.get_email_config(context.user_id)
        if email_config is None or not email_config.deliverable:
            counter("notifications.email.unverified_skip")
            logger.info(
                "Skipping email for user %s: no verified address", redact(context.user_id)
            )
            return None
        return email_payload(
            email_config.email or "",
            context.user_id,
            website,
            context.website_url,
            context.scrape,
            context.diff,
            analysis,
        )

    def _dispatch(
        self,
        outcome: RoutingOutcome,
        channel: DispatchChannel,
        build: Callable[[], dict[str, Any] | None],
    ) -> None:
        try:
            payload = build()
            if payload is None:
                return
            task_id = self.queue.enqueue(channel.task_kind, payload, delay=0)
            outcome.tasks.append(DispatchTask(channel=channel, payload=payload, task_id=task_id))
            counter(f"notifications.{channel.value}.enqueued")
        except Exception as e:
            outcome.failures[channel] = str(e)
            counter(f"notifications.{channel.value}.enqueue_error")
            logger.error("Failed to enqueue %s notification: %s", channel.value, e)
