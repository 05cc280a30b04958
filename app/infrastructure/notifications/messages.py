"""Pure builders turning a :class:`Notification` into transport payloads."""

from __future__ import annotations

import json
from typing import Any

from firebase_admin import messaging

from app.domain.entities import Notification, NotificationPriority
from app.infrastructure.email import EmailMessage
from app.utils import escape_html, now_in_app_timezone, truncate_text
from app.utils.text import DEFAULT_MAX_LENGTH

ANDROID_ICON = "ic_notification"
ANDROID_COLOR = "#1E3A8A"
ANDROID_CHANNEL_ID = "notifications"
CLICK_ACTION = "FLUTTER_NOTIFICATION_CLICK"

APNS_BADGE = 1
APNS_SOUND = "default"


def _is_high_priority(notification: Notification) -> bool:
    return notification.priority >= NotificationPriority.NORMAL


def _created_at_iso(notification: Notification) -> str:
    created_at = notification.created_at or now_in_app_timezone()
    return created_at.isoformat()


def build_push_data(notification: Notification) -> dict[str, str]:
    """Return the machine readable data block; FCM requires string values."""

    return {
        "notificationId": str(notification.id),
        "notificationType": notification.notification_type,
        "priority": str(int(notification.priority)),
        "actionUrl": notification.action_url or "",
        "actionData": json.dumps(dict(notification.action_data), default=str)
        if notification.action_data
        else "",
        "createdAt": _created_at_iso(notification),
    }


def build_push_message(
    token: str,
    notification: Notification,
    *,
    body_max_length: int = DEFAULT_MAX_LENGTH,
) -> messaging.Message:
    """Compose the FCM message for ``notification`` addressed to ``token``."""

    body = truncate_text(notification.content, body_max_length)
    high_priority = _is_high_priority(notification)

    return messaging.Message(
        token=token,
        notification=messaging.Notification(
            title=notification.title,
            body=body,
            image=notification.image_url or None,
        ),
        data=build_push_data(notification),
        android=messaging.AndroidConfig(
            priority="high" if high_priority else "normal",
            data={"click_action": CLICK_ACTION},
            notification=messaging.AndroidNotification(
                icon=ANDROID_ICON,
                color=ANDROID_COLOR,
                channel_id=ANDROID_CHANNEL_ID,
                click_action=CLICK_ACTION,
                default_sound=True,
            ),
        ),
        apns=messaging.APNSConfig(
            headers={
                "apns-priority": "10" if high_priority else "5",
                "apns-push-type": "alert",
            },
            payload=messaging.APNSPayload(
                aps=messaging.Aps(
                    alert=messaging.ApsAlert(title=notification.title, body=body),
                    badge=APNS_BADGE,
                    sound=APNS_SOUND,
                    content_available=True,
                )
            ),
        ),
    )


def build_realtime_payload(notification: Notification) -> dict[str, Any]:
    """Return the websocket event announcing ``notification``."""

    return {
        "type": "notification:new",
        "action": "created",
        "data": {
            "id": notification.id,
            "title": notification.title,
            "content": notification.content,
            "notification_type": notification.notification_type,
            "priority": int(notification.priority),
            "action_url": notification.action_url,
            "action_data": dict(notification.action_data),
            "image_url": notification.image_url,
            "created_at": notification.created_at.isoformat()
            if notification.created_at
            else None,
        },
        "timestamp": now_in_app_timezone().isoformat(),
    }


def build_email_message(recipient: str, notification: Notification) -> EmailMessage:
    """Render ``notification`` as an email for ``recipient``."""

    return EmailMessage(
        recipient=recipient,
        subject=notification.title,
        text=notification.content,
        html=f"<p>{escape_html(notification.content)}</p>",
    )


__all__ = [
    "build_email_message",
    "build_push_data",
    "build_push_message",
    "build_realtime_payload",
]
