from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from routers.rooms import rooms_router
from channels import WebSocketChannel
from constants import ALLOW_CREDENTIALS, ALLOWED_ORIGINS, LOG_FILE, LOG_LEVEL, REGISTRATION_POLICY, ROOM_CAPACITY
from message_router import MessageRouter, create_message_router
from typing import Optional
from logging_config import get_logger, setup_logging

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def create_app(message_router: Optional[MessageRouter] = None) -> FastAPI:
    """Build the relay application around its own registries.

    Each app owns one MessageRouter (and through it the connection and room
    registries), exposed as ``app.state.message_router``.
    """
    if message_router is None:
        message_router = create_message_router(ROOM_CAPACITY, REGISTRATION_POLICY)

    app = FastAPI(title="Peer Signal Relay")
    app.state.message_router = message_router

    # Configure CORS from ALLOWED_ORIGINS ("*" by default)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router)

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket, key: Optional[str] = None):
        """Signaling channel.

        Query parameters:
        - key: identity to bind at connect time; without it the first frame must be a login
        """
        await websocket.accept()
        channel = WebSocketChannel(websocket)
        identity = None
        logger.info(f"WebSocket connection accepted from {channel!r}, key: {key}")

        if key:
            if not await message_router.lifecycle.on_connect(key, channel):
                await websocket.close(code=1008, reason="Identity already connected")
                return
            identity = key

        try:
            message_count = 0
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
                # Binary frames go through the same decoding as text frames
                data = message.get("text")
                if data is None:
                    data = message.get("bytes") or b""
                message_count += 1

                if identity is None:
                    identity = await message_router.login(channel, data)
                    continue

                logger.debug(f"Received message #{message_count} from {identity}")
                await message_router.dispatch(identity, data)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected normally for identity {identity}")
        except Exception as e:
            logger.error(f"WebSocket error for identity {identity}: {e}", exc_info=True)
        finally:
            if identity is not None:
                await message_router.lifecycle.on_disconnect(identity, channel)

    logger.info("FastAPI application initialized")
    return app


app = create_app()
