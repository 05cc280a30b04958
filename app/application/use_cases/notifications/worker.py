"""Polling worker that leases outbox entries and hands them to the dispatcher."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.domain.entities import OutboxEntry
from app.infrastructure.repositories import (
    NotificationOutboxRepository,
    NotificationRepository,
)

from .dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

NOTIFICATION_MISSING_ERROR = "notification not found"


class OutboxWorker:
    """Drain due outbox entries in batches.

    Each cycle reclaims leases older than the visibility timeout, claims a
    batch of due entries and processes them one by one on a fresh session.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        dispatcher_factory: Callable[[Session], NotificationDispatcher],
        *,
        settings: Settings | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._dispatcher_factory = dispatcher_factory
        self._settings = settings or get_settings()

    def run_once(self) -> int:
        """Process one batch and return the number of leased entries."""

        session = self._session_factory()
        try:
            outbox = NotificationOutboxRepository(session)
            outbox.reclaim_expired(
                visibility_timeout_seconds=self._settings.outbox_visibility_timeout_seconds
            )
            batch = outbox.lease_next_batch(self._settings.outbox_batch_size)
            if not batch:
                return 0

            dispatcher = self._dispatcher_factory(session)
            notifications = NotificationRepository(session)
            for entry in batch:
                try:
                    self._process_entry(entry, dispatcher, notifications, outbox)
                except Exception:
                    # The lease stays until the visibility timeout reclaims it.
                    logger.exception("Unexpected error while processing outbox entry %s", entry.id)
                    session.rollback()
            return len(batch)
        finally:
            session.close()

    def run_forever(self, stop_event: threading.Event | None = None) -> None:
        stop_event = stop_event or threading.Event()
        interval = self._settings.outbox_poll_interval_seconds
        logger.info("Notification outbox worker started (poll interval %ss)", interval)
        while not stop_event.is_set():
            try:
                processed = self.run_once()
            except Exception:
                logger.exception("Notification outbox worker cycle failed")
                processed = 0
            if processed < self._settings.outbox_batch_size:
                stop_event.wait(interval)
        logger.info("Notification outbox worker stopped")

    @staticmethod
    def _process_entry(
        entry: OutboxEntry,
        dispatcher: NotificationDispatcher,
        notifications: NotificationRepository,
        outbox: NotificationOutboxRepository,
    ) -> None:
        notification = notifications.get(entry.notification_id)
        if notification is None:
            logger.warning(
                "Notification %s for outbox entry %s no longer exists; failing entry",
                entry.notification_id,
                entry.id,
            )
            outbox.record_failure(
                entry.id,
                error=NOTIFICATION_MISSING_ERROR,
                attempts=entry.attempts + 1,
                next_attempt_at=None,
                terminal=True,
            )
            return

        status = dispatcher.process(
            entry.id,
            notification=notification,
            user_id=entry.user_id,
            channels=entry.channels,
            claimed=True,
        )
        logger.debug("Outbox entry %s settled as %s", entry.id, status)


__all__ = ["NOTIFICATION_MISSING_ERROR", "OutboxWorker"]
