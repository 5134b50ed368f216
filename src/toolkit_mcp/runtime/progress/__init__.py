"""Progress reporting and the outbound notification channel."""

from .notifications import (
    BufferedNotifier,
    Notification,
    NotificationMethod,
    NotificationSink,
    NullNotifier,
)
from .reporter import ProgressReporter, new_token

__all__ = [
    "BufferedNotifier",
    "Notification",
    "NotificationMethod",
    "NotificationSink",
    "NullNotifier",
    "ProgressReporter",
    "new_token",
]
