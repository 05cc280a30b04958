"""Domain entity for a user's registered push device token."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class PushToken:
    """Current device token used to reach ``user_id`` over push."""

    user_id: int
    token: str
    updated_at: datetime | None = None
