"""Email channel rendering notifications as simple HTML messages."""

from __future__ import annotations

import logging

from app.domain.entities import Channel, DeliveryOutcome, Notification
from app.infrastructure.email import SendGridEmailTransport
from app.infrastructure.repositories import UserRepository

from ..errors import EmailErrorClassifier, ErrorClassifier
from ..messages import build_email_message

logger = logging.getLogger(__name__)


class EmailChannelProvider:
    """Email the notification to the address on the user's profile.

    A ``None`` transport means email is not configured; every call is then
    skipped rather than treated as a failure.
    """

    channel = Channel.EMAIL

    def __init__(
        self,
        transport: SendGridEmailTransport | None,
        user_repository: UserRepository,
        *,
        error_classifier: ErrorClassifier | None = None,
    ) -> None:
        self._transport = transport
        self._users = user_repository
        self.error_classifier = error_classifier or EmailErrorClassifier()

    def send(self, user_id: int, notification: Notification) -> DeliveryOutcome:
        if self._transport is None:
            logger.warning("Email transport not configured; skipping notification %s", notification.id)
            return DeliveryOutcome.SKIPPED

        recipient = self._users.get_email(user_id)
        if not recipient:
            logger.info("No email address for user %s; skipping", user_id)
            return DeliveryOutcome.SKIPPED

        message_id = self._transport.transmit(build_email_message(recipient, notification))
        logger.info(
            "Email for notification %s sent to user %s (message %s)",
            notification.id,
            user_id,
            message_id,
        )
        return DeliveryOutcome.SENT


__all__ = ["EmailChannelProvider"]
