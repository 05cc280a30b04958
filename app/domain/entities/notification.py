"""Domain entity representing a notification produced by another module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Mapping


class NotificationPriority(IntEnum):
    """Ordinal priority attached to a notification."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    URGENT = 3

    @classmethod
    def parse(cls, value: "NotificationPriority | int | str | None") -> "NotificationPriority":
        """Return the priority matching ``value`` (name or ordinal)."""

        if value is None:
            return cls.NORMAL
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and not value.isdigit():
            try:
                return cls[value.strip().upper()]
            except KeyError as exc:
                raise ValueError(f"Unknown notification priority '{value}'") from exc
        return cls(int(value))


@dataclass(frozen=True)
class Notification:
    """Immutable fact describing what should be delivered to users."""

    id: int
    title: str
    content: str
    notification_type: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    image_url: str | None = None
    action_url: str | None = None
    action_data: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


__all__ = ["Notification", "NotificationPriority"]
