from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route, WebSocketRoute

from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.logging import setup_logging
from xorng.messaging.router import MessageRouter
from xorng.server.settings import ServerSettings
from xorng.server.websocket import websocket_endpoint
from xorng.session.registry import RoomRegistry

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

logger = structlog.get_logger()

LIVENESS_TEXT = "WebSocket server running.\n"
_ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


async def status(request: Request) -> JSONResponse:
    registry: RoomRegistry = request.app.state.registry
    router: MessageRouter = request.app.state.router
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "commit": GIT_COMMIT,
            "rooms": registry.room_count,
            "connections": router.connection_count,
        },
    )


async def liveness(_request: Request) -> PlainTextResponse:
    """Answer every other HTTP path with a fixed 200 for health probes."""
    return PlainTextResponse(LIVENESS_TEXT)


def create_app(
    settings: ServerSettings | None = None,
    registry: RoomRegistry | None = None,
    router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ServerSettings()

    if registry is None:
        registry = RoomRegistry(max_rooms=settings.max_rooms)

    if router is None:
        router = MessageRouter(registry, max_message_bytes=settings.max_message_bytes)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, router)

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        logger.info("room server ready", max_rooms=settings.max_rooms)
        yield
        logger.info("room server stopping", rooms=registry.room_count, connections=router.connection_count)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/{path:path}", liveness, methods=_ANY_METHOD),
        WebSocketRoute("/{path:path}", ws_endpoint),
    ]

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.router = router
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (uvicorn --factory)."""
    settings = ServerSettings()
    setup_logging(log_dir=settings.log_dir, level=settings.log_level, log_format=settings.log_format)
    return create_app(settings=settings)


def main() -> None:  # pragma: no cover
    settings = ServerSettings()
    # log_config=None leaves logging to setup_logging() in get_app().
    uvicorn.run("xorng.server.app:get_app", factory=True, host=settings.host, port=settings.port, log_config=None)
