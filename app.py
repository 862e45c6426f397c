import os

import anyio
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.websockets import WebSocketState

from backend import Connection
from constants import CORS_ORIGINS, LOG_FILE, LOG_LEVEL, STATIC_DIR
from logging_config import get_logger, setup_logging
from routers.rooms import rooms_router
from sessions import session_manager
from signaling import message_router

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router)

logger.info("FastAPI application initialized")


@app.websocket("/")
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Signaling socket: one connection per participant.

    Every frame is handed to the message router; closing the socket counts
    as leaving whatever room the connection was in.
    """
    await websocket.accept()
    connection = Connection(websocket)
    logger.info(f"New client connected: {connection.id}")

    try:
        message_count = 0
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break

            message_count += 1
            logger.debug(f"Received frame #{message_count} from connection {connection.id}")
            raw = frame.get("text")
            if raw is None:
                raw = frame.get("bytes") or b""
            await message_router.dispatch(connection, raw)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection.id}: {e}", exc_info=True)
    finally:
        logger.info(f"Client disconnected: {connection.id}")
        # The leave path must finish even when the handler itself is being cancelled
        with anyio.CancelScope(shield=True):
            await session_manager.leave(connection)

            if websocket.client_state == WebSocketState.CONNECTED:
                try:
                    await websocket.close()
                except Exception as e:
                    logger.debug(f"Error closing WebSocket: {e}")


# Mounted last so the API and websocket routes take precedence
if os.path.isdir(STATIC_DIR):
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")
    logger.info(f"Serving static files from {STATIC_DIR}")
