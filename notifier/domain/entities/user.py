"""Domain entity representing a notification recipient."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """Contact details used to reach a user on each channel."""

    id: int | None
    name: str
    email: str | None = None
    phone: str | None = None
    created_at: datetime | None = None
