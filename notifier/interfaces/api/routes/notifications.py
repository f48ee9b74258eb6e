"""Endpoints to request notifications and stream in-app deliveries."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from notifier.application.use_cases.notifications import (
    create_notification as create_notification_uc,
    get_notification as get_notification_uc,
)
from notifier.domain.entities import Notification
from notifier.domain.errors import JobPublishError, NotificationNotFoundError, UserNotFoundError
from notifier.infrastructure.broker import JobPublisher
from notifier.infrastructure.database import SessionLocal, get_db
from notifier.infrastructure.notifications import notification_manager
from notifier.infrastructure.repositories import UserRepository
from notifier.interfaces.api.dependencies import get_job_publisher
from notifier.interfaces.api.schemas import NotificationCreate, NotificationRead

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


def _to_read_model(notification: Notification) -> NotificationRead:
    return NotificationRead.model_validate(notification)


@router.post("", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
def create_notification(
    notification_in: NotificationCreate,
    db: Session = Depends(get_db),
    publisher: JobPublisher = Depends(get_job_publisher),
) -> NotificationRead:
    """Registra una notificación y encola su entrega."""

    try:
        notification = create_notification_uc(
            db,
            publisher,
            user_id=notification_in.user_id,
            type=notification_in.type,
            content=notification_in.content,
            subject=notification_in.subject,
        )
    except UserNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Usuario no encontrado",
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except JobPublishError as exc:
        logger.error("Notification stored but its delivery job was not queued: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No se pudo encolar la notificación",
        ) from exc
    return _to_read_model(notification)


@router.get("/{notification_id}", response_model=NotificationRead)
def read_notification(
    notification_id: int,
    db: Session = Depends(get_db),
) -> NotificationRead:
    """Obtiene la notificación identificada por ``notification_id``."""

    try:
        notification = get_notification_uc(db, notification_id)
    except NotificationNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notificación no encontrada",
        ) from exc
    return _to_read_model(notification)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams in-app notifications to a user."""

    raw_user_id = websocket.query_params.get("user_id")
    try:
        user_id = int(raw_user_id) if raw_user_id else None
    except ValueError:
        user_id = None
    if user_id is None:
        await websocket.close(code=1008)
        return

    session = SessionLocal()
    try:
        user_exists = UserRepository(session).exists(user_id)
    finally:
        session.close()
    if not user_exists:
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
    except Exception:  # pragma: no cover - unexpected socket failure
        notification_manager.disconnect(user_id, websocket)
        raise
