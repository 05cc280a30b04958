import threading
from contextlib import asynccontextmanager
from functools import partial

import anyio
import anyio.to_thread
from fastapi import FastAPI

from app.application.use_cases.notifications import OutboxWorker, build_dispatcher
from app.config import get_settings
from app.infrastructure.database import SessionLocal, engine, initialize_database
from app.infrastructure.notifications import FirebasePushClient, notification_manager
from app.interfaces.api.routes import register_routes


def _build_worker(push_client: FirebasePushClient) -> OutboxWorker:
    return OutboxWorker(
        SessionLocal,
        partial(
            build_dispatcher,
            push_client=push_client,
            connection_manager=notification_manager,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup and, when enabled, run the outbox worker."""

    initialize_database()
    settings = get_settings()
    app.state.push_client = FirebasePushClient(settings)

    if not settings.outbox_worker_embedded:
        yield
        engine.dispose()
        return

    stop_event = threading.Event()
    worker = _build_worker(app.state.push_client)
    async with anyio.create_task_group() as task_group:
        # A worker thread owned by anyio can hand realtime sends back to this loop.
        task_group.start_soon(
            partial(anyio.to_thread.run_sync, worker.run_forever, stop_event)
        )
        yield
        stop_event.set()
    engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(lifespan=lifespan)
    register_routes(app)
    return app


app = create_app()
