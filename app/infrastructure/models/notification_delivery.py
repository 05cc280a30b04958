"""SQLAlchemy model recording per-channel delivery status."""

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class NotificationDeliveryModel(Base):
    """One row per (notification, user, channel) dedupe key."""

    __tablename__ = "notification_delivery"
    __table_args__ = (
        UniqueConstraint(
            "notification_id",
            "user_id",
            "channel",
            name="uq_notification_delivery_target",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    notification_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    channel = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="queued", index=True)
    sent_at = Column(DateTime(), nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(
        DateTime(),
        nullable=False,
        default=now_in_app_naive_datetime,
        onupdate=now_in_app_naive_datetime,
    )


__all__ = ["NotificationDeliveryModel"]
