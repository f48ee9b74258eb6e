"""Rutas de consulta de notificaciones por usuario."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from notifier.application.use_cases.notifications import (
    list_user_notifications as list_user_notifications_uc,
)
from notifier.domain.errors import UserNotFoundError
from notifier.infrastructure.database import get_db
from notifier.interfaces.api.schemas import NotificationRead

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/notifications", response_model=list[NotificationRead])
def list_user_notifications(
    user_id: int,
    limit: int = Query(50, gt=0, le=500, description="Número máximo de notificaciones"),
    db: Session = Depends(get_db),
) -> list[NotificationRead]:
    """Devuelve las notificaciones del usuario, de la más reciente a la más antigua."""

    try:
        notifications = list_user_notifications_uc(db, user_id, limit=limit)
    except UserNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Usuario no encontrado",
        ) from exc
    return [NotificationRead.model_validate(notification) for notification in notifications]
