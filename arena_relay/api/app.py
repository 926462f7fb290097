"""
FastAPI application factory for Arena Relay.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from arena_relay.api.connections import ConnectionManager
from arena_relay.api.routes import router
from arena_relay.config.settings import Settings, get_settings
from arena_relay.core.event_bus import EventType
from arena_relay.core.relay import MarketRelay
from arena_relay.utils.exceptions import (
    AuthenticationError,
    ExternalServiceError,
    RelayException,
    ValidationError,
)


logger = logging.getLogger(__name__)


def _status_for(exc: RelayException) -> int:
    if isinstance(exc, AuthenticationError):
        return 401
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, ExternalServiceError):
        return 502
    return 500


def create_app(
    relay: MarketRelay,
    settings: Optional[Settings] = None,
    manage_relay: bool = False
) -> FastAPI:
    """
    Build the API around a relay.

    Args:
        relay: Relay served by the API
        settings: Application settings
        manage_relay: Start and stop the relay with the application

    Returns:
        FastAPI application
    """
    settings = settings or get_settings()
    connections = ConnectionManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        subscriber_id = relay.event_bus.subscribe(
            EventType.MARKET_UPDATE, connections.on_market_update
        )
        if manage_relay:
            await relay.start()
        try:
            yield
        finally:
            if manage_relay:
                await relay.stop()
            relay.event_bus.unsubscribe(subscriber_id)

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.relay = relay
    app.state.settings = settings
    app.state.connections = connections

    @app.exception_handler(RelayException)
    async def relay_exception_handler(request: Request, exc: RelayException) -> JSONResponse:
        status = _status_for(exc)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=status, content={"error": exc.message, **exc.to_dict()})

    app.include_router(router)
    return app
