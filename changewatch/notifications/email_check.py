"""Test-email request: lets a user confirm their notification address works."""

from __future__ import annotations

from changewatch.analysis.errors import ConfigurationError
from changewatch.contracts import EmailConfigStore, SettingsStore, TaskQueuePort
from changewatch.notifications.models import EMAIL_TEST_TASK
from changewatch.observability.logging import get_logger
from changewatch.observability.telemetry import counter

logger = get_logger(__name__)


def request_test_email(
    user_id: str,
    email_store: EmailConfigStore,
    settings_store: SettingsStore,
    queue: TaskQueuePort,
) -> str:
    """
    Enqueue a test email to the user's verified address.

    Rendering the (optional) custom template is left to the email sender.

    Returns:
        Confirmation message naming the address

    Raises:
        ConfigurationError: No address configured, or address not verified
    """
    email_config = email_store.get_email_config(user_id)
    if email_config is None or not email_config.email:
        raise ConfigurationError("No email configured")
    if not email_config.is_verified:
        raise ConfigurationError("Email is not verified")

    settings = settings_store.get_user_settings(user_id)
    queue.enqueue(
        EMAIL_TEST_TASK,
        {
            "email": email_config.email,
            "userId": user_id,
            "emailTemplate": settings.email_template if settings else None,
        },
        delay=0,
    )
    counter("notifications.email_test.enqueued")
    logger.info("Test email scheduled for user %s", user_id)
    return f"Test email sent to {email_config.email}"
