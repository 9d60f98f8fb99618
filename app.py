from contextlib import asynccontextmanager
from typing import Callable

import anyio
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from connection import Connection
from constants import LOG_LEVEL, LOG_FILE
from context import SessionContext, build_context
from routers.rooms import rooms_router
from routers.static import static_router
from schemas.rooms import HealthResponse
from logging_config import get_logger, setup_logging

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


async def websocket_endpoint(websocket: WebSocket):
    """One persistent connection: every text frame is a JSON message with a `type`."""
    context: SessionContext = websocket.app.state.context
    await websocket.accept()
    conn = Connection(websocket)
    context.monitor.track(conn)
    logger.info(f"WebSocket connection accepted: {conn.id}")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"WebSocket disconnected normally for connection {conn.id}")
                break
            data = message.get("text")
            if data is None and message.get("bytes") is not None:
                data = message["bytes"].decode("utf-8", errors="replace")
            if data is None:
                continue
            try:
                await context.reconciler.handle_message(conn, data)
            except Exception as e:
                # Last resort: one bad frame must not take the connection down
                logger.error(f"Error handling message from connection {conn.id}: {e}", exc_info=True)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for connection {conn.id}")
    except Exception as e:
        if conn.closed:
            # Closed from our side (heartbeat eviction); receive() refuses to run after that
            logger.debug(f"Receive loop ended for closed connection {conn.id}: {e}")
        else:
            logger.error(f"WebSocket error for connection {conn.id} in room {conn.room_code}: {e}", exc_info=True)
    finally:
        context.monitor.untrack(conn)
        # The host may cancel this task once the socket is gone; the close
        # broadcast still has to reach the rest of the room.
        with anyio.CancelScope(shield=True):
            await context.reconciler.disconnect(conn)


def create_app(context_factory: Callable[[], SessionContext] = build_context) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        context = context_factory()
        app.state.context = context
        context.start()
        logger.info("Session context started")
        try:
            yield
        finally:
            await context.stop()

    app = FastAPI(lifespan=lifespan)

    # Configure CORS to allow all origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request):
        return HealthResponse(ok=True, rooms=len(request.app.state.context.store))

    app.include_router(rooms_router)
    app.add_api_websocket_route("/ws", websocket_endpoint)
    app.add_api_websocket_route("/", websocket_endpoint)
    # Catch-all static route goes last
    app.include_router(static_router)

    logger.info("FastAPI application initialized")
    return app


app = create_app()
