from contextlib import asynccontextmanager
import logging
import threading

from anyio import to_thread
from anyio.from_thread import BlockingPortal
from fastapi import FastAPI

from notifier.config import get_settings
from notifier.infrastructure.broker import create_connection
from notifier.infrastructure.channels import build_channel_registry
from notifier.infrastructure.database import engine, initialize_database
from notifier.infrastructure.worker import create_worker
from notifier.interfaces.api.routes import register_routes
from notifier.logging_config import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Inicializa la base de datos y, si se configuró, el worker de entregas."""

    settings = get_settings()
    initialize_database()
    if not settings.run_worker_in_process:
        yield
        engine.dispose()
        return

    connection = create_connection(settings)
    async with BlockingPortal() as portal:
        worker = create_worker(
            connection,
            settings=settings,
            channels=build_channel_registry(settings, portal=portal),
        )
        thread = threading.Thread(target=worker.start, name="notifier-worker", daemon=True)
        thread.start()
        try:
            yield
        finally:
            worker.stop()
            await to_thread.run_sync(thread.join)
    connection.release()
    engine.dispose()


def create_app() -> FastAPI:
    """Crea y configura la aplicación principal de FastAPI."""

    configure_logging()
    app = FastAPI(title="Notification Service", lifespan=lifespan)
    register_routes(app)
    return app


app = create_app()
