"""Endpoints for publishing notifications, inspecting deliveries and realtime."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from app.application.use_cases.notifications import publish_notification
from app.domain.entities import DeliveryRecord, OutboxEntry
from app.infrastructure.database import get_db
from app.infrastructure.notifications import notification_manager
from app.infrastructure.repositories import (
    NotificationDeliveryRepository,
    NotificationOutboxRepository,
)
from app.interfaces.api.schemas import (
    DeliveryRead,
    NotificationPublishRequest,
    NotificationPublishResponse,
    OutboxEntryRead,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _outbox_to_schema(entry: OutboxEntry) -> OutboxEntryRead:
    return OutboxEntryRead(
        id=entry.id or 0,
        notification_id=entry.notification_id,
        user_id=entry.user_id,
        channels=entry.channels,
        status=entry.status,
        attempts=entry.attempts,
        next_attempt_at=entry.next_attempt_at,
        last_error=entry.last_error,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def _delivery_to_schema(record: DeliveryRecord) -> DeliveryRead:
    payload = asdict(record)
    payload.pop("id", None)
    payload.pop("created_at", None)
    return DeliveryRead(**payload)


@router.post("/", response_model=NotificationPublishResponse, status_code=status.HTTP_202_ACCEPTED)
def publish(
    payload: NotificationPublishRequest,
    db: Session = Depends(get_db),
) -> NotificationPublishResponse:
    """Create a notification and queue its delivery to every recipient."""

    try:
        notification, entries = publish_notification(
            db,
            title=payload.title,
            content=payload.content,
            notification_type=payload.notification_type,
            user_ids=payload.user_ids,
            channels=payload.channels,
            priority=payload.priority,
            image_url=payload.image_url,
            action_url=payload.action_url,
            action_data=payload.action_data,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    return NotificationPublishResponse(
        notification_id=notification.id,
        outbox=[_outbox_to_schema(entry) for entry in entries],
    )


@router.get("/outbox/{outbox_id}", response_model=OutboxEntryRead)
def get_outbox_entry(outbox_id: int, db: Session = Depends(get_db)) -> OutboxEntryRead:
    entry = NotificationOutboxRepository(db).get(outbox_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Outbox entry not found")
    return _outbox_to_schema(entry)


@router.get("/{notification_id}/deliveries", response_model=list[DeliveryRead])
def list_deliveries(
    notification_id: int,
    user_id: int | None = None,
    db: Session = Depends(get_db),
) -> list[DeliveryRead]:
    """Return the per-channel delivery status of a notification."""

    records = NotificationDeliveryRepository(db).list_for_notification(
        notification_id, user_id=user_id
    )
    return [_delivery_to_schema(record) for record in records]


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Register a realtime connection for the user given in the query string."""

    raw_user_id = websocket.query_params.get("user_id")
    try:
        user_id = int(raw_user_id or "")
    except ValueError:
        await websocket.close(code=1008)
        return

    await notification_manager.connect(user_id, websocket)
    try:
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        notification_manager.disconnect(user_id, websocket)
    except Exception:
        notification_manager.disconnect(user_id, websocket)
        raise
