"""Domain entity for a pending, durable retry timer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class ScheduledRetry:
    """Republish request for ``notification_id`` that becomes due at ``due_at``."""

    id: int | None
    notification_id: int
    attempt: int
    due_at: datetime
    created_at: datetime | None = None


__all__ = ["ScheduledRetry"]
