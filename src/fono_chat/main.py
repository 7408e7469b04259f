# src/fono_chat/main.py
"""Main entry point for the Fono chat backend."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from fono_chat.api.v1 import messages_router, realtime_router
from fono_chat.core.logging import configure_logging
from fono_chat.core.settings import Settings, get_settings
from fono_chat.db.session import create_db_engine, create_session_factory, create_tables
from fono_chat.services.cipher import CipherEngine
from fono_chat.services.message_service import MessageService
from fono_chat.services.message_store import MessageStore
from fono_chat.services.notifications import NotificationDispatcher
from fono_chat.services.pusher import PusherClient, load_pusher_config

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    engine: Engine | None = None,
    pusher_client: PusherClient | None = None,
) -> FastAPI:
    """Build the application and wire every collaborator explicitly.

    The cipher is constructed here, so an invalid ``ENCRYPTION_KEY`` stops
    the process before it serves a single request.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    cipher = CipherEngine.from_hex(settings.encryption_key)
    engine = engine or create_db_engine(settings)
    store = MessageStore(create_session_factory(engine))
    pusher_client = pusher_client or PusherClient(load_pusher_config(settings))
    if not pusher_client.enabled:
        logger.warning("Pusher credentials missing; realtime notifications are disabled")

    app = FastAPI(
        title="Fono Chat API",
        description="Encrypted chat messages with realtime delivery",
        version=settings.app_version,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(messages_router, prefix="/api/v1")
    app.include_router(realtime_router, prefix="/api/v1")

    app.state.settings = settings
    app.state.engine = engine
    app.state.pusher_client = pusher_client
    app.state.message_service = MessageService(
        cipher=cipher,
        store=store,
        dispatcher=NotificationDispatcher(pusher_client),
        signer=pusher_client,
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        create_tables(engine)
        logger.info("%s listening", settings.app_name)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        engine.dispose()

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint to verify the service is running."""
        return {"status": "ok"}

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with basic information about the API."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
        }

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("fono_chat.main:create_app", factory=True, host="0.0.0.0", port=8000)
