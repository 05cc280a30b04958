"""Aggregate application use cases."""

from .notifications import build_dispatcher, publish_notification

__all__ = [
    "build_dispatcher",
    "publish_notification",
]
