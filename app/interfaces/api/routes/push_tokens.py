"""Registration endpoints for push device tokens."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.infrastructure.database import get_db
from app.infrastructure.repositories import PushTokenRepository
from app.interfaces.api.schemas import PushTokenRead, PushTokenWrite

router = APIRouter(prefix="/push-tokens", tags=["push-tokens"])


@router.put("/{user_id}", response_model=PushTokenRead)
def register_push_token(
    user_id: int,
    payload: PushTokenWrite,
    db: Session = Depends(get_db),
) -> PushTokenRead:
    """Store ``payload.token`` as the current device of ``user_id``."""

    try:
        token = PushTokenRepository(db).save(user_id, payload.token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return PushTokenRead(user_id=token.user_id, token=token.token, updated_at=token.updated_at)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_push_token(user_id: int, db: Session = Depends(get_db)) -> Response:
    if not PushTokenRepository(db).delete(user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Push token not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
