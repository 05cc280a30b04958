"""Tests for the push, email and realtime payload builders."""

from __future__ import annotations

import json

from conftest import make_notification

from app.domain.entities import NotificationPriority
from app.infrastructure.notifications.messages import (
    CLICK_ACTION,
    build_email_message,
    build_push_data,
    build_push_message,
    build_realtime_payload,
)
from app.utils.text import ELLIPSIS


def test_push_message_combines_notification_and_data_blocks() -> None:
    notification = make_notification(
        id=15,
        title="Grades posted",
        content="Your report card is ready.",
        notification_type="grade_posted",
        priority=NotificationPriority.HIGH,
        image_url="https://cdn.example.com/card.png",
        action_url="grades/15",
        action_data={"term": 2, "student_id": 9},
    )

    message = build_push_message("device-token", notification)

    assert message.token == "device-token"
    assert message.notification.title == "Grades posted"
    assert message.notification.body == "Your report card is ready."
    assert message.notification.image == "https://cdn.example.com/card.png"
    assert message.data == {
        "notificationId": "15",
        "notificationType": "grade_posted",
        "priority": "2",
        "actionUrl": "grades/15",
        "actionData": json.dumps({"term": 2, "student_id": 9}),
        "createdAt": "2024-05-01T08:30:00+00:00",
    }


def test_push_message_platform_hints() -> None:
    message = build_push_message("token", make_notification(priority=NotificationPriority.URGENT))

    assert message.android.priority == "high"
    assert message.android.data == {"click_action": CLICK_ACTION}
    assert message.android.notification.click_action == CLICK_ACTION
    assert message.android.notification.default_sound is True
    assert message.apns.headers == {"apns-priority": "10", "apns-push-type": "alert"}
    aps = message.apns.payload.aps
    assert aps.badge == 1
    assert aps.sound == "default"
    assert aps.content_available is True
    assert aps.alert.title == "Title"


def test_low_priority_push_uses_normal_delivery() -> None:
    message = build_push_message("token", make_notification(priority=NotificationPriority.LOW))

    assert message.android.priority == "normal"
    assert message.apns.headers["apns-priority"] == "5"


def test_push_body_is_truncated() -> None:
    notification = make_notification(content="lorem ipsum " * 30)

    message = build_push_message("token", notification, body_max_length=40)

    assert len(message.notification.body) <= 40
    assert message.notification.body.endswith(ELLIPSIS)
    assert message.apns.payload.aps.alert.body == message.notification.body


def test_push_data_handles_missing_optional_fields() -> None:
    data = build_push_data(make_notification(action_url=None, action_data={}))

    assert data["actionUrl"] == ""
    assert data["actionData"] == ""
    assert all(isinstance(value, str) for value in data.values())


def test_push_data_defaults_created_at_when_missing() -> None:
    data = build_push_data(make_notification(created_at=None))

    assert data["createdAt"]


def test_realtime_payload_shape() -> None:
    payload = build_realtime_payload(make_notification(id=3, action_data={"a": 1}))

    assert payload["type"] == "notification:new"
    assert payload["action"] == "created"
    assert payload["data"]["id"] == 3
    assert payload["data"]["action_data"] == {"a": 1}
    assert payload["data"]["created_at"] == "2024-05-01T08:30:00+00:00"
    assert payload["timestamp"]


def test_email_message_escapes_html() -> None:
    notification = make_notification(title="Reminder", content="Bring <paper> & pens")

    message = build_email_message("parent@example.com", notification)

    assert message.recipient == "parent@example.com"
    assert message.subject == "Reminder"
    assert message.text == "Bring <paper> & pens"
    assert message.html == "<p>Bring &lt;paper&gt; &amp; pens</p>"
