"""Outbound dispatch payloads handed to the webhook and email senders."""

from __future__ import annotations

from typing import Any

from changewatch.analysis.models import AnalysisResult, DiffPayload
from changewatch.storage.models import ScrapeRecord, Website

CHANGE_TYPE = "content_changed"
CHANGE_STATUS = "changed"


def webhook_payload(
    website: Website,
    website_url: str,
    result_id: str,
    scrape: ScrapeRecord,
    diff: DiffPayload,
    analysis: AnalysisResult,
) -> dict[str, Any]:
    """Full context bundle for the webhook sender."""
    return {
        "webhookUrl": website.webhook_url,
        "websiteId": website.id,
        "websiteName": website.name,
        "websiteUrl": website_url,
        "scrapeResultId": result_id,
        "changeType": CHANGE_TYPE,
        "changeStatus": CHANGE_STATUS,
        "diff": diff.to_payload(),
        "title": scrape.title,
        "description": scrape.description,
        "markdown": scrape.markdown,
        "scrapedAt": scrape.scraped_at_iso(),
        "aiAnalysis": analysis.to_payload(),
    }


def email_payload(
    email: str,
    user_id: str,
    website: Website,
    website_url: str,
    scrape: ScrapeRecord,
    diff: DiffPayload,
    analysis: AnalysisResult,
) -> dict[str, Any]:
    """Context bundle for the email sender."""
    return {
        "email": email,
        "websiteName": website.name,
        "websiteUrl": website_url,
        "changeType": CHANGE_TYPE,
        "changeStatus": CHANGE_STATUS,
        "diff": diff.to_payload(),
        "title": scrape.title,
        "scrapedAt": scrape.scraped_at_iso(),
        "userId": user_id,
        "aiAnalysis": analysis.to_payload(),
    }
