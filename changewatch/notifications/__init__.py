"""
Notifications module - channel eligibility and deferred dispatch.

The router decides which of webhook/email apply to an analyzed diff and
enqueues one task per channel; delivery belongs to external senders.
"""

from changewatch.notifications.models import (
    DispatchChannel,
    DispatchTask,
    FilteringPrefs,
    NotificationPreference,
    RoutingOutcome,
)

__all__ = [
    "DispatchChannel",
    "DispatchTask",
    "FilteringPrefs",
    "NotificationPreference",
    "RoutingOutcome",
]
