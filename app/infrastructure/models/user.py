"""SQLAlchemy model for the user table."""

from sqlalchemy import Boolean, Column, Integer, String

from app.infrastructure.database import Base


class UserModel(Base):
    """Minimal projection of the user table read by the email channel."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(120), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)


__all__ = ["UserModel"]
