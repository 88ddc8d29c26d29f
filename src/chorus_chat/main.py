# src/chorus_chat/main.py
"""Main entry point for the Chorus Chat application."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from chorus_chat.api.v1 import (
    conversations_router,
    messages_router,
    notifications_router,
    realtime_router,
)
from chorus_chat.core.errors import (
    ChatError,
    NotAuthorized,
    NotFound,
    TransientPersistenceFailure,
    ValidationError,
)
from chorus_chat.core.logging import configure_logging
from chorus_chat.core.settings import settings
from chorus_chat.services.call_signaling import CallSignalingRelay
from chorus_chat.services.presence import PresenceRegistry

ERROR_STATUS_CODES: dict[type[ChatError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotAuthorized: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    TransientPersistenceFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Translate chat errors raised by REST handlers into HTTP responses."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.detail})


def create_app() -> FastAPI:
    """Build the application with a fresh presence registry."""
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Chorus Chat API",
        description="Direct messaging, presence and call signaling for Chorus",
        version=settings.app_version,
    )

    # One registry per process, shared by the message and call relays.
    presence = PresenceRegistry()
    app.state.presence = presence
    app.state.call_signaling = CallSignalingRelay(presence)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    app.add_middleware(GZipMiddleware)

    app.include_router(conversations_router, prefix="/api/v1")
    app.include_router(messages_router, prefix="/api/v1")
    app.include_router(notifications_router, prefix="/api/v1")
    app.include_router(realtime_router, prefix="/api/v1")

    app.add_exception_handler(ChatError, chat_error_handler)

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
            "description": "Direct messaging, presence and call signaling for Chorus",
            "realtime": "/api/v1/ws",
            "docs": "/docs",
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("chorus_chat.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
