"""
Notification domain models.

Per-website channel preference, per-user filtering flags, and the dispatch
tasks handed to external senders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

WEBHOOK_TASK = "notification.webhook"
EMAIL_TASK = "notification.email"
EMAIL_TEST_TASK = "notification.email_test"


class NotificationPreference(str, Enum):
    """Which channels are active for a monitored website."""

    NONE = "none"
    WEBHOOK = "webhook"
    EMAIL = "email"
    BOTH = "both"

    @property
    def includes_webhook(self) -> bool:
        return self in (NotificationPreference.WEBHOOK, NotificationPreference.BOTH)

    @property
    def includes_email(self) -> bool:
        return self in (NotificationPreference.EMAIL, NotificationPreference.BOTH)


class DispatchChannel(str, Enum):
    WEBHOOK = "webhook"
    EMAIL = "email"

    @property
    def task_kind(self) -> str:
        return WEBHOOK_TASK if self is DispatchChannel.WEBHOOK else EMAIL_TASK


class FilteringPrefs(BaseModel):
    """User-level switches that restrict a channel to meaningful changes."""

    model_config = ConfigDict(frozen=True)

    webhook_only_if_meaningful: bool = False
    email_only_if_meaningful: bool = False


@dataclass(frozen=True)
class DispatchTask:
    """One deferred delivery, consumed exactly once by an external sender."""

    channel: DispatchChannel
    payload: dict[str, Any]
    task_id: str | None = None

    @property
    def kind(self) -> str:
        return self.channel.task_kind


@dataclass(frozen=True)
class ChannelDecision:
    """Eligibility of each channel before any lookup or enqueue happens."""

    webhook: bool
    email: bool


@dataclass
class RoutingOutcome:
    """What the router did for one analysis result."""

    webhook_eligible: bool = False
    email_eligible: bool = False
    tasks: list[DispatchTask] = field(default_factory=list)
    failures: dict[DispatchChannel, str] = field(default_factory=dict)
    skip_reason: str | None = None

    @property
    def enqueued_channels(self) -> list[DispatchChannel]:
        return [task.channel for task in self.tasks]

    @classmethod
    def skipped(cls, reason: str) -> RoutingOutcome:
        """Factory for a run where nothing was attempted."""
        return cls(skip_reason=reason)
