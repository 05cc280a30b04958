"""Channel providers and the factory assembling them for a session."""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.infrastructure.email import SendGridEmailTransport, build_email_transport
from app.infrastructure.repositories import PushTokenRepository, UserRepository

from ..manager import NotificationConnectionManager, notification_manager
from ..push.client import FirebasePushClient
from .email import EmailChannelProvider
from .push import PushChannelProvider
from .realtime import RealtimeChannelProvider


def build_channel_providers(
    session: Session,
    *,
    push_client: FirebasePushClient,
    settings: Settings | None = None,
    email_transport: SendGridEmailTransport | None = None,
    connection_manager: NotificationConnectionManager | None = None,
) -> list[PushChannelProvider | EmailChannelProvider | RealtimeChannelProvider]:
    """Return one provider per channel bound to ``session``."""

    settings = settings or get_settings()
    transport = email_transport if email_transport is not None else build_email_transport(settings)
    return [
        PushChannelProvider(
            push_client,
            PushTokenRepository(session),
            body_max_length=settings.push_body_max_length,
        ),
        EmailChannelProvider(transport, UserRepository(session)),
        RealtimeChannelProvider(connection_manager or notification_manager),
    ]


__all__ = [
    "EmailChannelProvider",
    "PushChannelProvider",
    "RealtimeChannelProvider",
    "build_channel_providers",
]
