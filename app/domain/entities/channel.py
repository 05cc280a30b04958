"""Delivery channels supported by the dispatch engine."""

from __future__ import annotations

from enum import Enum
from typing import Iterable


class Channel(str, Enum):
    """Distinct transport used to reach a user."""

    PUSH = "push"
    EMAIL = "email"
    REALTIME = "realtime"


DEFAULT_CHANNELS: tuple[Channel, ...] = (Channel.PUSH, Channel.EMAIL, Channel.REALTIME)


class DeliveryOutcome(str, Enum):
    """Result reported by a channel provider for a single send."""

    SENT = "sent"
    SKIPPED = "skipped"


def normalize_channels(channels: Iterable[Channel | str] | None) -> list[Channel]:
    """Return ``channels`` as an ordered list without duplicates.

    ``None`` selects every channel. Unknown names raise ``ValueError``.
    """

    if channels is None:
        return list(DEFAULT_CHANNELS)
    ordered: list[Channel] = []
    for value in channels:
        channel = Channel(value)
        if channel not in ordered:
            ordered.append(channel)
    return ordered


__all__ = ["Channel", "DEFAULT_CHANNELS", "DeliveryOutcome", "normalize_channels"]
