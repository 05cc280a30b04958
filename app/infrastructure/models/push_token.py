"""SQLAlchemy model storing the current push token of each user."""

from sqlalchemy import Column, DateTime, Integer, Text

from app.infrastructure.database import Base
from app.utils import now_in_app_naive_datetime


class PushTokenModel(Base):
    """Device token registered by a user's client application."""

    __tablename__ = "push_token"

    user_id = Column(Integer, primary_key=True)
    token = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(),
        nullable=False,
        default=now_in_app_naive_datetime,
        onupdate=now_in_app_naive_datetime,
    )


__all__ = ["PushTokenModel"]
