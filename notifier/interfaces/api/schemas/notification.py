"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from notifier.domain.entities import NotificationStatus, NotificationType


class NotificationCreate(BaseModel):
    """Payload used to request the delivery of a notification."""

    user_id: int = Field(..., gt=0, description="Identificador del usuario destinatario")
    type: NotificationType = Field(..., description="Canal de entrega")
    content: str = Field(..., min_length=1, description="Cuerpo de la notificación")
    subject: str | None = Field(
        default=None,
        max_length=255,
        description="Asunto, solo se utiliza para notificaciones por correo",
    )


class NotificationRead(BaseModel):
    """Representation of a notification returned to the client."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: NotificationType
    content: str
    subject: str | None = None
    status: NotificationStatus
    retry_count: int
    created_at: datetime
    updated_at: datetime


__all__ = ["NotificationCreate", "NotificationRead"]
