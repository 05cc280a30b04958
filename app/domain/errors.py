"""Errors shared between channel transports and the dispatcher."""

from __future__ import annotations


class ChannelDeliveryError(RuntimeError):
    """Transport failure normalized by a channel adapter.

    ``code`` is a channel specific identifier (for example
    ``registration-token-not-registered`` for push). ``is_permanent`` tells
    the error classifier that retrying cannot succeed.
    """

    def __init__(
        self,
        channel: str,
        code: str | None,
        message: str,
        *,
        is_permanent: bool = False,
    ) -> None:
        super().__init__(message)
        self.channel = channel
        self.code = code
        self.message = message
        self.is_permanent = is_permanent

    def __str__(self) -> str:
        if self.code:
            return f"[{self.channel}:{self.code}] {self.message}"
        return f"[{self.channel}] {self.message}"


__all__ = ["ChannelDeliveryError"]
