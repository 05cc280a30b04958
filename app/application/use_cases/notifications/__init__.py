"""Notification dispatch use cases: enqueueing, processing and polling."""

from .dispatcher import (
    ChannelProvider,
    FailureReporter,
    LoggingFailureReporter,
    NotificationDispatcher,
)
from .factory import build_dispatcher
from .publish import publish_notification
from .retry import RetryPolicy
from .worker import OutboxWorker

__all__ = [
    "ChannelProvider",
    "FailureReporter",
    "LoggingFailureReporter",
    "NotificationDispatcher",
    "OutboxWorker",
    "RetryPolicy",
    "build_dispatcher",
    "publish_notification",
]
