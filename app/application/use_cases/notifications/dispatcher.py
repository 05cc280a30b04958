"""Fan notifications out to users and channels through the outbox."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import Protocol

from app.domain.entities import (
    DELIVERY_STATUS_SENT,
    OUTBOX_STATUS_PENDING,
    OUTBOX_STATUS_PROCESSING,
    OUTBOX_STATUS_SENT,
    Channel,
    DeliveryOutcome,
    Notification,
    OutboxEntry,
    normalize_channels,
)
from app.infrastructure.repositories import (
    NotificationDeliveryRepository,
    NotificationOutboxRepository,
)
from app.utils import now_in_app_timezone

from .retry import RetryPolicy

logger = logging.getLogger(__name__)


class ErrorHandler(Protocol):
    def handle(self, error: BaseException, user_id: int, notification_id: int) -> None: ...


class ChannelProvider(Protocol):
    """Capability every delivery channel exposes to the dispatcher.

    ``send`` returns ``sent`` or ``skipped`` and raises on transport
    failure. ``error_classifier`` may absorb permanent failures.
    """

    channel: Channel
    error_classifier: ErrorHandler | None

    def send(self, user_id: int, notification: Notification) -> DeliveryOutcome: ...


class FailureReporter(Protocol):
    def report_terminal_failure(self, entry: OutboxEntry) -> None: ...


class LoggingFailureReporter:
    """Default reporter: surface exhausted entries in the error log."""

    def report_terminal_failure(self, entry: OutboxEntry) -> None:
        logger.error(
            "Outbox entry %s for notification %s user %s failed permanently after %s attempts: %s",
            entry.id,
            entry.notification_id,
            entry.user_id,
            entry.attempts,
            entry.last_error,
        )


class NotificationDispatcher:
    """Write outbox work for producers and settle it for workers."""

    def __init__(
        self,
        outbox_repository: NotificationOutboxRepository,
        delivery_repository: NotificationDeliveryRepository,
        providers: Iterable[ChannelProvider],
        *,
        retry_policy: RetryPolicy | None = None,
        failure_reporter: FailureReporter | None = None,
        skip_sent_channels: bool = True,
        clock: Callable[[], datetime] = now_in_app_timezone,
    ) -> None:
        self._outbox = outbox_repository
        self._deliveries = delivery_repository
        self._providers: dict[Channel, ChannelProvider] = {}
        for provider in providers:
            self._providers[Channel(provider.channel)] = provider
        self._retry_policy = retry_policy or RetryPolicy()
        self._failure_reporter = failure_reporter or LoggingFailureReporter()
        self._skip_sent_channels = skip_sent_channels
        self._clock = clock

    def enqueue(
        self,
        notification: Notification,
        user_ids: Iterable[int],
        channels: Iterable[Channel | str] | None = None,
    ) -> list[OutboxEntry]:
        """Persist delivery records and one outbox entry per user.

        Delivery rows for a user are committed before that user's outbox entry
        is inserted, so a worker never sees a channel without its record.
        Enqueuing the same notification again creates a new outbox entry
        and leaves existing delivery records untouched.
        """

        targets = list(dict.fromkeys(user_ids))
        if not targets:
            raise ValueError("At least one user id is required to enqueue a notification")
        channel_list = normalize_channels(channels)

        entries: list[OutboxEntry] = []
        for user_id in targets:
            for channel in channel_list:
                self._deliveries.upsert_queued(
                    notification_id=notification.id, user_id=user_id, channel=channel
                )
            entries.append(
                self._outbox.enqueue(
                    notification_id=notification.id,
                    user_id=user_id,
                    channels=channel_list,
                )
            )
        return entries

    def process(
        self,
        outbox_id: int,
        *,
        notification: Notification,
        user_id: int,
        channels: Sequence[Channel | str],
        claimed: bool = False,
    ) -> str:
        """Attempt every channel of an entry and settle its status.

        Returns the resulting outbox status. A pending entry is claimed first;
        when another caller wins the claim nothing is sent. ``claimed=True``
        tells the dispatcher the caller already holds the lease, as the
        outbox worker does after :meth:`lease_next_batch`. A transient failure
        aborts the remaining channels and reschedules the entry through the
        retry policy.
        """

        entry = self._outbox.get(outbox_id)
        if entry is None:
            msg = f"Outbox entry with id {outbox_id} not found"
            raise ValueError(msg)
        if entry.is_terminal:
            logger.info("Outbox entry %s already %s; nothing to do", outbox_id, entry.status)
            return entry.status

        if entry.status == OUTBOX_STATUS_PENDING and not claimed:
            leased = self._outbox.claim(outbox_id)
            if leased is None:
                current = self._outbox.get(outbox_id)
                status = current.status if current else entry.status
                logger.info("Outbox entry %s claimed elsewhere (%s); skipping", outbox_id, status)
                return status
            entry = leased
        elif entry.status != OUTBOX_STATUS_PROCESSING or not claimed:
            logger.info(
                "Outbox entry %s is %s and not leased by this caller; skipping",
                outbox_id,
                entry.status,
            )
            return entry.status

        try:
            self._deliver(notification, user_id, normalize_channels(channels))
        except Exception as exc:
            logger.exception(
                "Delivery of outbox entry %s (notification %s, user %s) failed",
                outbox_id,
                notification.id,
                user_id,
            )
            return self._reschedule(entry, exc)

        self._outbox.mark_sent(outbox_id)
        return OUTBOX_STATUS_SENT

    def _deliver(
        self, notification: Notification, user_id: int, channels: Sequence[Channel]
    ) -> None:
        for channel in channels:
            provider = self._providers.get(channel)
            if provider is None:
                logger.debug("No provider registered for channel %s", channel.value)
                continue

            key = {"notification_id": notification.id, "user_id": user_id, "channel": channel}
            if self._skip_sent_channels:
                record = self._deliveries.get(**key)
                if record is not None and record.status == DELIVERY_STATUS_SENT:
                    logger.info(
                        "Channel %s already delivered notification %s to user %s",
                        channel.value,
                        notification.id,
                        user_id,
                    )
                    continue

            try:
                outcome = provider.send(user_id, notification)
            except Exception as exc:
                self._absorb_or_raise(provider, exc, key)
                self._deliveries.mark_skipped(**key, reason=str(exc))
                continue

            if outcome == DeliveryOutcome.SENT:
                self._deliveries.mark_sent(**key)
            else:
                self._deliveries.mark_skipped(**key)

    def _absorb_or_raise(self, provider: ChannelProvider, exc: Exception, key: dict) -> None:
        classifier = getattr(provider, "error_classifier", None)
        try:
            if classifier is None:
                raise exc
            classifier.handle(exc, key["user_id"], key["notification_id"])
        except Exception as error:
            self._deliveries.mark_failed(**key, error=str(error) or error.__class__.__name__)
            raise

    def _reschedule(self, entry: OutboxEntry, exc: Exception) -> str:
        attempts = entry.attempts + 1
        terminal = self._retry_policy.is_exhausted(attempts)
        next_attempt_at = (
            None if terminal else self._retry_policy.next_attempt_at(attempts, now=self._clock())
        )
        updated = self._outbox.record_failure(
            entry.id,
            error=str(exc) or exc.__class__.__name__,
            attempts=attempts,
            next_attempt_at=next_attempt_at,
            terminal=terminal,
        )
        if terminal:
            self._deliveries.fail_unsettled(
                notification_id=entry.notification_id,
                user_id=entry.user_id,
                channels=entry.channels,
                error=updated.last_error or "delivery failed",
            )
            self._failure_reporter.report_terminal_failure(updated)
        else:
            logger.warning(
                "Outbox entry %s rescheduled (attempt %s of %s) for %s",
                entry.id,
                attempts,
                self._retry_policy.max_attempts,
                next_attempt_at.isoformat() if next_attempt_at else None,
            )
        return updated.status


__all__ = [
    "ChannelProvider",
    "FailureReporter",
    "LoggingFailureReporter",
    "NotificationDispatcher",
]
