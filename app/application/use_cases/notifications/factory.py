"""Assemble a dispatcher bound to one database session."""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.infrastructure.email import SendGridEmailTransport
from app.infrastructure.notifications import (
    FirebasePushClient,
    NotificationConnectionManager,
    build_channel_providers,
)
from app.infrastructure.repositories import (
    NotificationDeliveryRepository,
    NotificationOutboxRepository,
)

from .dispatcher import FailureReporter, NotificationDispatcher
from .retry import RetryPolicy


def build_dispatcher(
    session: Session,
    *,
    push_client: FirebasePushClient | None = None,
    settings: Settings | None = None,
    email_transport: SendGridEmailTransport | None = None,
    connection_manager: NotificationConnectionManager | None = None,
    failure_reporter: FailureReporter | None = None,
) -> NotificationDispatcher:
    """Return a dispatcher wired with the default channel providers.

    Without ``push_client`` only producer operations are meaningful: no
    channel provider is registered and :meth:`process` settles entries
    without sending anything.
    """

    settings = settings or get_settings()
    providers = (
        build_channel_providers(
            session,
            push_client=push_client,
            settings=settings,
            email_transport=email_transport,
            connection_manager=connection_manager,
        )
        if push_client is not None
        else []
    )
    return NotificationDispatcher(
        NotificationOutboxRepository(session),
        NotificationDeliveryRepository(session),
        providers,
        retry_policy=RetryPolicy.from_settings(settings),
        failure_reporter=failure_reporter,
    )


__all__ = ["build_dispatcher"]
