"""Domain entity for durable notification work items."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .channel import Channel

OUTBOX_STATUS_PENDING = "pending"
OUTBOX_STATUS_PROCESSING = "processing"
OUTBOX_STATUS_SENT = "sent"
OUTBOX_STATUS_FAILED = "failed"

OUTBOX_TERMINAL_STATUSES = frozenset({OUTBOX_STATUS_SENT, OUTBOX_STATUS_FAILED})


@dataclass
class OutboxEntry:
    """One fan-out target (notification x user) and the channels to attempt."""

    id: int | None
    notification_id: int
    user_id: int
    channels: list[Channel] = field(default_factory=list)
    status: str = OUTBOX_STATUS_PENDING
    attempts: int = 0
    next_attempt_at: datetime | None = None
    last_error: str | None = None
    leased_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in OUTBOX_TERMINAL_STATUSES


__all__ = [
    "OutboxEntry",
    "OUTBOX_STATUS_PENDING",
    "OUTBOX_STATUS_PROCESSING",
    "OUTBOX_STATUS_SENT",
    "OUTBOX_STATUS_FAILED",
    "OUTBOX_TERMINAL_STATUSES",
]
