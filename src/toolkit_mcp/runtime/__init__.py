"""Runtime - the invocation pipeline and its supporting services.

Contains: rate limiting, progress/notifications, dispatch, maintenance, logging setup.
"""

from .dispatch import Dispatcher, Invocation, InvocationState
from .maintenance import MaintenanceLoop
from .progress import BufferedNotifier, Notification, NotificationMethod, NotificationSink, ProgressReporter
from .ratelimit import CategoryRouter, RateLimiter

__all__ = [
    "BufferedNotifier",
    "CategoryRouter",
    "Dispatcher",
    "Invocation",
    "InvocationState",
    "MaintenanceLoop",
    "Notification",
    "NotificationMethod",
    "NotificationSink",
    "ProgressReporter",
    "RateLimiter",
]
