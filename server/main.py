"""FastAPI WebSocket server for two-player UNO."""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from config import config
from engine import GameEngine
from handlers import ConnectionContext, handle_disconnect, handle_message
from logging_config import setup_logging
from room import RoomManager
from routers.health import router as health_router

# Configure logging based on environment
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"UNO server started (environment={config.ENVIRONMENT})")
    yield
    logger.info(f"Shutdown complete ({len(app.state.room_manager.rooms)} rooms discarded)")


def create_app(room_manager: Optional[RoomManager] = None) -> FastAPI:
    """
    Build the application.

    This is the composition root: it owns the RoomManager and hands it to
    the GameEngine. Tests pass their own (seeded) RoomManager.
    """
    room_manager = room_manager or RoomManager(seed=config.RANDOM_SEED)
    engine = GameEngine(room_manager)

    app = FastAPI(
        title="UNO Duel",
        debug=config.DEBUG,
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.room_manager = room_manager
    app.state.engine = engine
    app.include_router(health_router)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await websocket.accept()

        connection_id = str(uuid.uuid4())
        logger.debug(f"WebSocket connected as {connection_id}")
        ctx = ConnectionContext(websocket=websocket, connection_id=connection_id)

        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None:
                    logger.warning(f"Ignoring non-text frame on {connection_id}")
                    continue
                await handle_message(raw, ctx, engine=engine)
        except WebSocketDisconnect:
            logger.debug(f"WebSocket {connection_id} disconnected")
        finally:
            await handle_disconnect(ctx)

    return app


app = create_app()


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting UNO server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
