"""Liveness endpoint."""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, str]:
    """Indica que el proceso está atendiendo peticiones."""

    return {"status": "ok"}
