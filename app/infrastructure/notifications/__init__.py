"""Channel providers, transports and payload builders for notifications."""

from .channels import (
    EmailChannelProvider,
    PushChannelProvider,
    RealtimeChannelProvider,
    build_channel_providers,
)
from .errors import EmailErrorClassifier, ErrorClassifier, PushErrorClassifier
from .manager import NotificationConnectionManager, notification_manager
from .messages import (
    build_email_message,
    build_push_data,
    build_push_message,
    build_realtime_payload,
)
from .push import FirebasePushClient

__all__ = [
    "EmailChannelProvider",
    "PushChannelProvider",
    "RealtimeChannelProvider",
    "build_channel_providers",
    "ErrorClassifier",
    "EmailErrorClassifier",
    "PushErrorClassifier",
    "NotificationConnectionManager",
    "notification_manager",
    "build_email_message",
    "build_push_data",
    "build_push_message",
    "build_realtime_payload",
    "FirebasePushClient",
]
