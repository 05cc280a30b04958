"""Persistence helpers for the notification outbox queue."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.domain.entities import (
    OUTBOX_STATUS_FAILED,
    OUTBOX_STATUS_PENDING,
    OUTBOX_STATUS_PROCESSING,
    OUTBOX_STATUS_SENT,
    Channel,
    OutboxEntry,
    normalize_channels,
)
from app.infrastructure.models import NotificationOutboxModel
from app.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_naive_datetime,
)

logger = logging.getLogger(__name__)

_MAX_ERROR_LENGTH = 2000


class NotificationOutboxRepository:
    """Queue operations over :class:`OutboxEntry` rows.

    ``status`` doubles as the lease: an entry is owned by whichever caller
    moved it from ``pending`` to ``processing`` through :meth:`claim`.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, outbox_id: int) -> OutboxEntry | None:
        model = self.session.get(NotificationOutboxModel, outbox_id, populate_existing=True)
        return self._to_entity(model) if model else None

    def list_for_notification(self, notification_id: int) -> Sequence[OutboxEntry]:
        query = (
            self.session.query(NotificationOutboxModel)
            .filter(NotificationOutboxModel.notification_id == notification_id)
            .order_by(NotificationOutboxModel.id.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def enqueue(
        self,
        *,
        notification_id: int,
        user_id: int,
        channels: Iterable[Channel | str],
        run_at: datetime | None = None,
    ) -> OutboxEntry:
        now = now_in_app_naive_datetime()
        model = NotificationOutboxModel(
            notification_id=notification_id,
            user_id=user_id,
            channels=[channel.value for channel in normalize_channels(channels)],
            status=OUTBOX_STATUS_PENDING,
            attempts=0,
            next_attempt_at=ensure_app_naive_datetime(run_at) or now,
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        logger.info(
            "Outbox entry %s queued for notification %s user %s (%s channels)",
            model.id,
            notification_id,
            user_id,
            len(model.channels),
        )
        return self._to_entity(model)

    def claim(self, outbox_id: int) -> OutboxEntry | None:
        """Atomically move ``outbox_id`` from ``pending`` to ``processing``.

        Returns the claimed entry, or ``None`` when another worker holds it
        or it is not pending.
        """

        now = now_in_app_naive_datetime()
        updated = (
            self.session.query(NotificationOutboxModel)
            .filter(
                NotificationOutboxModel.id == outbox_id,
                NotificationOutboxModel.status == OUTBOX_STATUS_PENDING,
            )
            .update(
                {
                    NotificationOutboxModel.status: OUTBOX_STATUS_PROCESSING,
                    NotificationOutboxModel.leased_at: now,
                    NotificationOutboxModel.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        if updated != 1:
            return None
        return self.get(outbox_id)

    def lease_next_batch(self, limit: int = 25) -> list[OutboxEntry]:
        """Claim up to ``limit`` pending entries whose retry time has come."""

        now = now_in_app_naive_datetime()
        candidate_ids = [
            outbox_id
            for (outbox_id,) in self.session.query(NotificationOutboxModel.id)
            .filter(
                NotificationOutboxModel.status == OUTBOX_STATUS_PENDING,
                NotificationOutboxModel.next_attempt_at <= now,
            )
            .order_by(
                NotificationOutboxModel.next_attempt_at.asc(),
                NotificationOutboxModel.id.asc(),
            )
            .limit(limit)
            .with_for_update(skip_locked=True)
            .all()
        ]
        # Release the row locks taken by the candidate query.
        self.session.commit()

        leased: list[OutboxEntry] = []
        for outbox_id in candidate_ids:
            entry = self.claim(outbox_id)
            if entry is not None:
                leased.append(entry)
        return leased

    def mark_sent(self, outbox_id: int) -> bool:
        now = now_in_app_naive_datetime()
        updated = (
            self.session.query(NotificationOutboxModel)
            .filter(
                NotificationOutboxModel.id == outbox_id,
                NotificationOutboxModel.status.in_(
                    (OUTBOX_STATUS_PENDING, OUTBOX_STATUS_PROCESSING)
                ),
            )
            .update(
                {
                    NotificationOutboxModel.status: OUTBOX_STATUS_SENT,
                    NotificationOutboxModel.leased_at: None,
                    NotificationOutboxModel.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated > 0

    def record_failure(
        self,
        outbox_id: int,
        *,
        error: str,
        attempts: int,
        next_attempt_at: datetime | None,
        terminal: bool,
    ) -> OutboxEntry:
        """Persist a failed attempt and release the lease.

        ``terminal`` moves the entry to ``failed``; otherwise it returns to
        ``pending`` until ``next_attempt_at``.
        """

        model = self.session.get(NotificationOutboxModel, outbox_id)
        if model is None:
            msg = f"Outbox entry with id {outbox_id} not found"
            raise ValueError(msg)

        now = now_in_app_naive_datetime()
        model.attempts = attempts
        model.last_error = error[:_MAX_ERROR_LENGTH]
        model.status = OUTBOX_STATUS_FAILED if terminal else OUTBOX_STATUS_PENDING
        if next_attempt_at is not None:
            model.next_attempt_at = ensure_app_naive_datetime(next_attempt_at)
        model.leased_at = None
        model.updated_at = now
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def reclaim_expired(self, *, visibility_timeout_seconds: int) -> int:
        """Return abandoned ``processing`` entries to ``pending``."""

        now = now_in_app_naive_datetime()
        deadline = now - timedelta(seconds=visibility_timeout_seconds)
        updated = (
            self.session.query(NotificationOutboxModel)
            .filter(
                NotificationOutboxModel.status == OUTBOX_STATUS_PROCESSING,
                NotificationOutboxModel.leased_at < deadline,
            )
            .update(
                {
                    NotificationOutboxModel.status: OUTBOX_STATUS_PENDING,
                    NotificationOutboxModel.leased_at: None,
                    NotificationOutboxModel.next_attempt_at: now,
                    NotificationOutboxModel.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        if updated:
            logger.warning(
                "Reclaimed %s outbox entries stuck in processing for more than %ss",
                updated,
                visibility_timeout_seconds,
            )
        return updated

    def count_by_status(self) -> dict[str, int]:
        rows = (
            self.session.query(NotificationOutboxModel.status, func.count())
            .group_by(NotificationOutboxModel.status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def _to_entity(model: NotificationOutboxModel) -> OutboxEntry:
        return OutboxEntry(
            id=model.id,
            notification_id=model.notification_id,
            user_id=model.user_id,
            channels=normalize_channels(model.channels or []),
            status=model.status,
            attempts=model.attempts or 0,
            next_attempt_at=ensure_app_timezone(model.next_attempt_at),
            last_error=model.last_error,
            leased_at=ensure_app_timezone(model.leased_at),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["NotificationOutboxRepository"]
