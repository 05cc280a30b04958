"""In-app realtime channel delivering over open websocket connections."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from anyio import from_thread

from app.domain.entities import Channel, DeliveryOutcome, Notification

from ..manager import NotificationConnectionManager
from ..messages import build_realtime_payload

logger = logging.getLogger(__name__)


class RealtimeChannelProvider:
    """Push the notification to users that are connected right now.

    Nothing is queued for offline users; they are reported as skipped and
    will see the notification through the other channels.
    """

    channel = Channel.REALTIME
    error_classifier = None

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    def send(self, user_id: int, notification: Notification) -> DeliveryOutcome:
        if not self._manager.is_connected(user_id):
            logger.info("User %s has no active connection; skipping realtime", user_id)
            return DeliveryOutcome.SKIPPED

        message = build_realtime_payload(notification)
        if not self._deliver(user_id, message):
            return DeliveryOutcome.SKIPPED

        logger.info("Realtime notification %s delivered to user %s", notification.id, user_id)
        return DeliveryOutcome.SENT

    def _deliver(self, user_id: int, message: dict[str, Any]) -> bool:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            try:
                delivered = from_thread.run(self._manager.send_to_user, user_id, message)
            except RuntimeError:
                # Connections live on an event loop this thread cannot reach.
                logger.warning(
                    "Realtime delivery unavailable outside the API event loop; skipping user %s",
                    user_id,
                )
                return False
            if not delivered:
                logger.warning("No websocket accepted the notification for user %s", user_id)
            return delivered > 0

        # Blocking on the result here would deadlock the loop that owns the sockets.
        logger.warning(
            "Realtime delivery requested from the event loop thread; skipping user %s", user_id
        )
        return False


__all__ = ["RealtimeChannelProvider"]
