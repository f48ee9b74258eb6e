from fastapi import FastAPI

from .health import router as health_router
from .notifications import router as notifications_router
from .users import router as users_router

API_PREFIX = "/api"


def register_routes(app: FastAPI) -> None:
    """Registra todos los routers de la API en la aplicación FastAPI."""

    app.include_router(health_router)
    app.include_router(notifications_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)
