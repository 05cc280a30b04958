"""SQLAlchemy model for notifications written by producing modules."""

from sqlalchemy import Column, DateTime, Integer, JSON, String, Text

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class NotificationModel(Base):
    """Database representation of a notification fact."""

    __tablename__ = "notification"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    notification_type = Column(String(50), nullable=False)
    priority = Column(Integer, nullable=False, default=1)
    image_url = Column(String(500), nullable=True)
    action_url = Column(String(500), nullable=True)
    action_data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)


__all__ = ["NotificationModel"]
