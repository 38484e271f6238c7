import json
from typing import Iterable, Optional

from fastapi import WebSocket

from backend import ConnectionRegistry, Delivery
from logging_config import get_logger

logger = get_logger(__name__)


class WebSocketChannel:
    """Endpoint channel backed by a FastAPI WebSocket carrying JSON text frames."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send(self, message: dict):
        await self.websocket.send_text(json.dumps(message))

    async def close(self, code: int = 1000, reason: Optional[str] = None):
        await self.websocket.close(code=code, reason=reason)

    def __repr__(self):
        client = self.websocket.client
        return f"WebSocketChannel({client.host}:{client.port})" if client else "WebSocketChannel()"


async def send_to_channel(channel, message: dict) -> bool:
    """Send on a channel, treating a closed or broken channel as a dropped message."""
    try:
        await channel.send(message)
        return True
    except Exception as e:
        logger.debug(f"Dropped {message.get('type')} message on {channel!r}: {e}")
        return False


async def send_if_present(connections: ConnectionRegistry, identity: str, message: dict) -> bool:
    """Send ``message`` to whatever channel ``identity`` is bound to right now.

    Returns False when the identity is unknown or the send failed.
    """
    channel = connections.lookup(identity)
    if channel is None:
        logger.debug(f"Dropped {message.get('type')} message for unknown identity {identity}")
        return False
    return await send_to_channel(channel, message)


async def deliver(connections: ConnectionRegistry, deliveries: Iterable[Delivery]) -> int:
    """Send each delivery in order and return how many reached a channel."""
    delivered = 0
    for target, message in deliveries:
        if await send_if_present(connections, target, message):
            delivered += 1
    return delivered
