"""Persistence helpers for per-channel delivery records."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.domain.entities import (
    DELIVERY_STATUS_FAILED,
    DELIVERY_STATUS_QUEUED,
    DELIVERY_STATUS_SENT,
    DELIVERY_STATUS_SKIPPED,
    Channel,
    DeliveryRecord,
)
from app.infrastructure.models import NotificationDeliveryModel
from app.utils import ensure_app_timezone, now_in_app_naive_datetime


class NotificationDeliveryRepository:
    """Store delivery status keyed by ``(notification_id, user_id, channel)``.

    A record that reached ``sent`` is never moved to another status; every
    mutating query below filters it out.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(
        self, *, notification_id: int, user_id: int, channel: Channel | str
    ) -> DeliveryRecord | None:
        model = self._get_model(notification_id, user_id, channel)
        return self._to_entity(model) if model else None

    def list_for_notification(
        self, notification_id: int, *, user_id: int | None = None
    ) -> Sequence[DeliveryRecord]:
        query = self.session.query(NotificationDeliveryModel).filter(
            NotificationDeliveryModel.notification_id == notification_id
        )
        if user_id is not None:
            query = query.filter(NotificationDeliveryModel.user_id == user_id)
        query = query.order_by(
            NotificationDeliveryModel.user_id.asc(), NotificationDeliveryModel.id.asc()
        )
        return [self._to_entity(model) for model in query.all()]

    def upsert_queued(
        self, *, notification_id: int, user_id: int, channel: Channel | str
    ) -> DeliveryRecord:
        """Create the ``queued`` record for the target unless it already exists."""

        existing = self._get_model(notification_id, user_id, channel)
        if existing is not None:
            return self._to_entity(existing)

        now = now_in_app_naive_datetime()
        model = NotificationDeliveryModel(
            notification_id=notification_id,
            user_id=user_id,
            channel=Channel(channel).value,
            status=DELIVERY_STATUS_QUEUED,
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        try:
            self.session.commit()
        except IntegrityError:
            # Another writer inserted the same dedupe key first.
            self.session.rollback()
            existing = self._get_model(notification_id, user_id, channel)
            if existing is None:
                raise
            return self._to_entity(existing)
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_sent(
        self, *, notification_id: int, user_id: int, channel: Channel | str
    ) -> bool:
        now = now_in_app_naive_datetime()
        updated = (
            self._target_query(notification_id, user_id, channel)
            .filter(NotificationDeliveryModel.status != DELIVERY_STATUS_SENT)
            .update(
                {
                    NotificationDeliveryModel.status: DELIVERY_STATUS_SENT,
                    NotificationDeliveryModel.sent_at: now,
                    NotificationDeliveryModel.error: None,
                    NotificationDeliveryModel.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated > 0

    def mark_skipped(
        self,
        *,
        notification_id: int,
        user_id: int,
        channel: Channel | str,
        reason: str | None = None,
    ) -> bool:
        return self._set_unsent_status(
            notification_id, user_id, channel, DELIVERY_STATUS_SKIPPED, reason
        )

    def mark_failed(
        self,
        *,
        notification_id: int,
        user_id: int,
        channel: Channel | str,
        error: str,
    ) -> bool:
        return self._set_unsent_status(
            notification_id, user_id, channel, DELIVERY_STATUS_FAILED, error
        )

    def fail_unsettled(
        self,
        *,
        notification_id: int,
        user_id: int,
        channels: Iterable[Channel | str],
        error: str,
    ) -> int:
        """Mark every still ``queued`` or ``failed`` record of the target as ``failed``."""

        channel_values = [Channel(channel).value for channel in channels]
        if not channel_values:
            return 0
        updated = (
            self.session.query(NotificationDeliveryModel)
            .filter(
                NotificationDeliveryModel.notification_id == notification_id,
                NotificationDeliveryModel.user_id == user_id,
                NotificationDeliveryModel.channel.in_(channel_values),
                NotificationDeliveryModel.status.in_(
                    (DELIVERY_STATUS_QUEUED, DELIVERY_STATUS_FAILED)
                ),
            )
            .update(
                {
                    NotificationDeliveryModel.status: DELIVERY_STATUS_FAILED,
                    NotificationDeliveryModel.error: error,
                    NotificationDeliveryModel.updated_at: now_in_app_naive_datetime(),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def _set_unsent_status(
        self,
        notification_id: int,
        user_id: int,
        channel: Channel | str,
        status: str,
        error: str | None,
    ) -> bool:
        updated = (
            self._target_query(notification_id, user_id, channel)
            .filter(NotificationDeliveryModel.status != DELIVERY_STATUS_SENT)
            .update(
                {
                    NotificationDeliveryModel.status: status,
                    NotificationDeliveryModel.error: error,
                    NotificationDeliveryModel.updated_at: now_in_app_naive_datetime(),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated > 0

    def _target_query(self, notification_id: int, user_id: int, channel: Channel | str):
        return self.session.query(NotificationDeliveryModel).filter(
            NotificationDeliveryModel.notification_id == notification_id,
            NotificationDeliveryModel.user_id == user_id,
            NotificationDeliveryModel.channel == Channel(channel).value,
        )

    def _get_model(
        self, notification_id: int, user_id: int, channel: Channel | str
    ) -> NotificationDeliveryModel | None:
        return self._target_query(notification_id, user_id, channel).first()

    @staticmethod
    def _to_entity(model: NotificationDeliveryModel) -> DeliveryRecord:
        return DeliveryRecord(
            id=model.id,
            notification_id=model.notification_id,
            user_id=model.user_id,
            channel=Channel(model.channel),
            status=model.status,
            sent_at=ensure_app_timezone(model.sent_at),
            error=model.error,
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["NotificationDeliveryRepository"]
