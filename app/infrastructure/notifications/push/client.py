"""Long-lived Firebase Admin SDK handle used by the push channel."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import threading
from typing import Any

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError, InvalidArgumentError

from app.config import Settings, get_settings
from app.domain.entities import Channel
from app.domain.errors import ChannelDeliveryError

logger = logging.getLogger(__name__)

PUSH_TOKEN_NOT_REGISTERED = "registration-token-not-registered"
PUSH_TOKEN_INVALID = "invalid-registration-token"

_APP_NAME = "notification-dispatch"


def _parse_service_account(raw: str) -> dict[str, Any] | None:
    """Decode the service account from raw JSON or base64 encoded JSON."""

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    try:
        decoded = base64.b64decode(raw, validate=True).decode("utf-8")
        return json.loads(decoded)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError):
        logger.error("Firebase service account key is neither JSON nor base64 JSON")
        return None


def translate_firebase_error(exc: Exception) -> ChannelDeliveryError:
    """Map a Firebase Admin SDK exception onto :class:`ChannelDeliveryError`."""

    if isinstance(exc, ChannelDeliveryError):
        return exc
    if isinstance(exc, messaging.UnregisteredError):
        return ChannelDeliveryError(
            Channel.PUSH.value, PUSH_TOKEN_NOT_REGISTERED, str(exc), is_permanent=True
        )
    if isinstance(exc, messaging.SenderIdMismatchError):
        return ChannelDeliveryError(
            Channel.PUSH.value, PUSH_TOKEN_INVALID, str(exc), is_permanent=True
        )
    if isinstance(exc, InvalidArgumentError) and "registration token" in str(exc).lower():
        return ChannelDeliveryError(
            Channel.PUSH.value, PUSH_TOKEN_INVALID, str(exc), is_permanent=True
        )
    if isinstance(exc, FirebaseError):
        code = str(exc.code or "unknown").lower().replace("_", "-")
        return ChannelDeliveryError(Channel.PUSH.value, code, str(exc))
    return ChannelDeliveryError(Channel.PUSH.value, "transport-error", str(exc) or repr(exc))


class FirebasePushClient:
    """Own the Firebase app and messaging handle for the process lifetime.

    :meth:`initialize` is attempted lazily by the push channel. It returns
    ``False`` when credentials are missing or invalid, and the outcome is
    remembered so later calls do not retry the setup.
    """

    def __init__(self, settings: Settings | None = None, *, app_name: str = _APP_NAME) -> None:
        self._settings = settings
        self._app_name = app_name
        self._app: firebase_admin.App | None = None
        self._initialization_failed = False
        self._lock = threading.Lock()

    def is_initialized(self) -> bool:
        return self._app is not None

    def initialize(self) -> bool:
        if self._app is not None:
            return True

        with self._lock:
            if self._app is not None:
                return True
            if self._initialization_failed:
                return False
            self._initialization_failed = not self._setup()
            return not self._initialization_failed

    def _setup(self) -> bool:
        settings = self._settings or get_settings()
        if not settings.push_enabled:
            logger.warning("Firebase configuration not found; push channel disabled")
            return False

        service_account = _parse_service_account(
            settings.firebase_service_account_key or ""
        )
        if service_account is None:
            return False

        try:
            self._app = firebase_admin.get_app(self._app_name)
        except ValueError:
            try:
                self._app = firebase_admin.initialize_app(
                    credentials.Certificate(service_account),
                    {"projectId": settings.firebase_project_id},
                    name=self._app_name,
                )
            except (ValueError, OSError) as exc:
                logger.error("Firebase initialization failed: %s", exc)
                return False

        logger.info("Firebase Admin SDK initialized for project %s", settings.firebase_project_id)
        return True

    def transmit(self, message: messaging.Message) -> str:
        """Send ``message`` and return the FCM message id."""

        if self._app is None:
            raise ChannelDeliveryError(
                Channel.PUSH.value, "not-initialized", "Firebase client is not initialized"
            )
        try:
            return messaging.send(message, app=self._app)
        except Exception as exc:
            raise translate_firebase_error(exc) from exc


__all__ = [
    "FirebasePushClient",
    "PUSH_TOKEN_INVALID",
    "PUSH_TOKEN_NOT_REGISTERED",
    "translate_firebase_error",
]
