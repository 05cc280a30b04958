"""Per-channel classification of delivery failures."""

from __future__ import annotations

import logging

from app.domain.entities import Channel
from app.infrastructure.repositories import PushTokenRepository

from .push.client import PUSH_TOKEN_INVALID, PUSH_TOKEN_NOT_REGISTERED

logger = logging.getLogger(__name__)

EMAIL_INVALID_RECIPIENT = "invalid-recipient"


class ErrorClassifier:
    """Decide whether a send failure is permanent or should be retried.

    Permanent failures invalidate the offending credential and return, so
    the dispatcher records the channel as skipped. Anything else is
    re-raised unchanged and the dispatcher reschedules the whole entry.
    """

    channel: Channel
    permanent_codes: frozenset[str] = frozenset()

    def is_permanent(self, error: BaseException) -> bool:
        if getattr(error, "is_permanent", False):
            return True
        return getattr(error, "code", None) in self.permanent_codes

    def handle(self, error: BaseException, user_id: int, notification_id: int) -> None:
        code = getattr(error, "code", None)
        if self.is_permanent(error):
            logger.warning(
                "Permanent %s failure for user %s (notification %s, code %s); invalidating",
                self.channel.value,
                user_id,
                notification_id,
                code,
            )
            self.invalidate(user_id)
            return

        logger.error(
            "%s send failed for user %s (notification %s, code %s): %s",
            self.channel.value,
            user_id,
            notification_id,
            code,
            error,
        )
        raise error

    def invalidate(self, user_id: int) -> None:
        """Remove the credential that caused a permanent failure."""


class PushErrorClassifier(ErrorClassifier):
    channel = Channel.PUSH
    permanent_codes = frozenset({PUSH_TOKEN_NOT_REGISTERED, PUSH_TOKEN_INVALID})

    def __init__(self, token_repository: PushTokenRepository) -> None:
        self._tokens = token_repository

    def invalidate(self, user_id: int) -> None:
        self._tokens.delete(user_id)


class EmailErrorClassifier(ErrorClassifier):
    # Addresses belong to the user profile, so nothing is deleted here.
    channel = Channel.EMAIL
    permanent_codes = frozenset({EMAIL_INVALID_RECIPIENT})


__all__ = [
    "EMAIL_INVALID_RECIPIENT",
    "EmailErrorClassifier",
    "ErrorClassifier",
    "PushErrorClassifier",
]
