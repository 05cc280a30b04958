"""Push notification channel backed by Firebase Cloud Messaging."""

from __future__ import annotations

import logging

from app.domain.entities import Channel, DeliveryOutcome, Notification
from app.infrastructure.repositories import PushTokenRepository
from app.utils.text import DEFAULT_MAX_LENGTH

from ..errors import ErrorClassifier, PushErrorClassifier
from ..messages import build_push_message
from ..push.client import FirebasePushClient

logger = logging.getLogger(__name__)


class PushChannelProvider:
    """Deliver notifications to the device token registered by each user."""

    channel = Channel.PUSH

    def __init__(
        self,
        client: FirebasePushClient,
        token_repository: PushTokenRepository,
        *,
        body_max_length: int = DEFAULT_MAX_LENGTH,
        error_classifier: ErrorClassifier | None = None,
    ) -> None:
        self._client = client
        self._tokens = token_repository
        self._body_max_length = body_max_length
        self.error_classifier = error_classifier or PushErrorClassifier(token_repository)

    def send(self, user_id: int, notification: Notification) -> DeliveryOutcome:
        if not self._client.is_initialized() and not self._client.initialize():
            logger.warning("Push client unavailable; skipping notification %s", notification.id)
            return DeliveryOutcome.SKIPPED

        token = self._tokens.get_token(user_id)
        if not token:
            logger.info("No push token for user %s; skipping", user_id)
            return DeliveryOutcome.SKIPPED

        message = build_push_message(
            token, notification, body_max_length=self._body_max_length
        )
        message_id = self._client.transmit(message)
        logger.info(
            "Push notification %s sent to user %s (message %s, token %s...)",
            notification.id,
            user_id,
            message_id,
            token[:12],
        )
        return DeliveryOutcome.SENT


__all__ = ["PushChannelProvider"]
