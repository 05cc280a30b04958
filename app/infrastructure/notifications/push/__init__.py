"""Push (Firebase Cloud Messaging) transport helpers."""

from .client import (
    PUSH_TOKEN_INVALID,
    PUSH_TOKEN_NOT_REGISTERED,
    FirebasePushClient,
    translate_firebase_error,
)

__all__ = [
    "FirebasePushClient",
    "PUSH_TOKEN_INVALID",
    "PUSH_TOKEN_NOT_REGISTERED",
    "translate_firebase_error",
]
