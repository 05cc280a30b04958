"""Pydantic models for push token registration."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class PushTokenWrite(BaseModel):
    token: str = Field(..., min_length=1, description="Device registration token")


class PushTokenRead(BaseModel):
    user_id: int
    token: str
    updated_at: datetime | None = None


__all__ = ["PushTokenRead", "PushTokenWrite"]
