"""
Collaborator records consumed by the pipeline.

Settings, websites, scrape records and email configuration are owned by
external stores; these models define the shape the pipeline reads.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from changewatch.analysis.models import AIConfig
from changewatch.config import (
    DEFAULT_AI_BASE_URL,
    DEFAULT_AI_MODEL,
    DEFAULT_MEANINGFUL_CHANGE_THRESHOLD,
)
from changewatch.notifications.models import FilteringPrefs, NotificationPreference


class UserSettings(BaseModel):
    """Per-user AI and notification-filtering settings."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    ai_analysis_enabled: bool = False
    ai_api_key: str | None = None
    ai_base_url: str | None = None
    ai_model: str | None = None
    ai_system_prompt: str | None = None
    ai_meaningful_change_threshold: float | None = None
    webhook_only_if_meaningful: bool = False
    email_only_if_meaningful: bool = False
    email_template: str | None = None

    @property
    def analysis_ready(self) -> bool:
        """AI analysis is switched on and a key is present."""
        return self.ai_analysis_enabled and bool(self.ai_api_key)

    def to_ai_config(self) -> AIConfig:
        """
        Build the per-run AIConfig, applying defaults.

        Empty strings fall back to defaults; an explicit threshold of 0 is kept.

        Raises:
            ValueError: No API key configured
        """
        if not self.ai_api_key:
            raise ValueError(f"No API key configured for user {self.user_id}")

        threshold = self.ai_meaningful_change_threshold
        return AIConfig(
            api_key=self.ai_api_key,
            base_url=self.ai_base_url or DEFAULT_AI_BASE_URL,
            model=self.ai_model or DEFAULT_AI_MODEL,
            system_prompt=self.ai_system_prompt or None,
            meaningful_change_threshold=(
                DEFAULT_MEANINGFUL_CHANGE_THRESHOLD if threshold is None else threshold
            ),
        )

    def filtering_prefs(self) -> FilteringPrefs:
        return FilteringPrefs(
            webhook_only_if_meaningful=self.webhook_only_if_meaningful,
            email_only_if_meaningful=self.email_only_if_meaningful,
        )

    def __repr__(self) -> str:
        return (
            f"UserSettings(user_id={self.user_id!r}, "
            f"ai_analysis_enabled={self.ai_analysis_enabled!r}, "
            f"has_api_key={bool(self.ai_api_key)!r}, ai_model={self.ai_model!r})"
        )


class Website(BaseModel):
    """A monitored website and its notification routing."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    name: str
    url: str
    notification_preference: NotificationPreference = NotificationPreference.NONE
    webhook_url: str | None = None


class ScrapeRecord(BaseModel):
    """Scrape metadata stored alongside a diff; the analysis is keyed to its id."""

    model_config = ConfigDict(frozen=True)

    id: str
    website_id: str
    title: str | None = None
    description: str | None = None
    markdown: str | None = None
    scraped_at: datetime | None = None

    def scraped_at_iso(self) -> str | None:
        return self.scraped_at.isoformat() if self.scraped_at else None


class EmailConfig(BaseModel):
    """A user's notification email address and its verification state."""

    model_config = ConfigDict(frozen=True)

    email: str | None = None
    is_verified: bool = False

    @property
    def deliverable(self) -> bool:
        return bool(self.email) and self.is_verified

