"""Finite-state machine governing notification status changes.

``pending`` is the only non-terminal state. It may stay ``pending`` (a failed
attempt that will be retried) or move to ``sent`` / ``failed``. Nothing leaves
a terminal state.
"""

from __future__ import annotations

from typing import Final, Mapping

from notifier.domain.entities import NotificationStatus
from notifier.domain.errors import InvalidStatusTransition

ALLOWED_TRANSITIONS: Final[Mapping[NotificationStatus, frozenset[NotificationStatus]]] = {
    NotificationStatus.PENDING: frozenset(
        {
            NotificationStatus.PENDING,
            NotificationStatus.SENT,
            NotificationStatus.FAILED,
        }
    ),
    NotificationStatus.SENT: frozenset(),
    NotificationStatus.FAILED: frozenset(),
}


def can_transition(current: NotificationStatus, target: NotificationStatus) -> bool:
    """Return ``True`` when ``current`` may move to ``target``."""

    return target in ALLOWED_TRANSITIONS[NotificationStatus(current)]


def ensure_transition(
    current: NotificationStatus, target: NotificationStatus
) -> NotificationStatus:
    """Validate ``current -> target`` and return the target status."""

    current = NotificationStatus(current)
    target = NotificationStatus(target)
    if not can_transition(current, target):
        msg = f"Cannot change notification status from {current.value} to {target.value}"
        raise InvalidStatusTransition(msg)
    return target


__all__ = ["ALLOWED_TRANSITIONS", "can_transition", "ensure_transition"]
