"""Logging setup shared by the API and worker entry points."""

from __future__ import annotations

import logging

from notifier.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def configure_logging(level: str | int | None = None) -> None:
    """Configure the root logger using ``LOG_LEVEL`` unless ``level`` is given."""

    resolved = level if level is not None else get_settings().log_level
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger().setLevel(resolved)
    # kombu logs every reconnect attempt at INFO.
    logging.getLogger("kombu").setLevel(max(resolved, logging.WARNING))


__all__ = ["LOG_FORMAT", "configure_logging"]
