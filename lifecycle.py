from typing import Any, List, Optional

from backend import ConnectionRegistry, Delivery, RoomRegistry
from channels import deliver, send_if_present, send_to_channel
from constants import REGISTRATION_POLICY
from logging_config import get_logger
from message_types import MSG_ERROR, MSG_JOIN, MSG_LEAVE, SESSION_REPLACED

logger = get_logger(__name__)

POLICY_REPLACE = "replace"
POLICY_REPLACE_AND_CLOSE = "replace_and_close"
POLICY_REJECT = "reject"
REGISTRATION_POLICIES = (POLICY_REPLACE, POLICY_REPLACE_AND_CLOSE, POLICY_REJECT)

# Close code sent to a channel displaced by a newer session
CLOSE_CODE_REPLACED = 4001


class LifecycleManager:
    """Keeps the connection and room registries consistent across join, quit and disconnect.

    Every operation does all of its registry reads and writes before awaiting
    a single send, so operations never interleave on the event loop.
    """

    def __init__(self, connections: ConnectionRegistry, rooms: RoomRegistry,
                 registration_policy: str = REGISTRATION_POLICY):
        if registration_policy not in REGISTRATION_POLICIES:
            raise ValueError(f"Unknown registration policy: {registration_policy!r}")
        self.connections = connections
        self.rooms = rooms
        self.registration_policy = registration_policy

    async def on_connect(self, identity: str, channel) -> bool:
        """Bind a freshly established channel to ``identity``.

        Returns False when the registration policy refuses a second session.
        """
        if identity in self.connections and self.registration_policy == POLICY_REJECT:
            logger.warning(f"Registration rejected: identity {identity} is already connected")
            return False

        previous = self.connections.register(identity, channel)
        logger.info(f"Identity {identity} connected ({len(self.connections)} online)")
        if previous is None:
            return True

        deliveries = []
        if previous.room is not None:
            deliveries = self.rooms.leave(previous.room, identity)
        await deliver(self.connections, deliveries)

        if previous.channel is not channel and self.registration_policy == POLICY_REPLACE_AND_CLOSE:
            logger.info(f"Closing displaced session of identity {identity}")
            await send_to_channel(previous.channel, {"type": MSG_ERROR, "message": SESSION_REPLACED})
            try:
                await previous.channel.close(code=CLOSE_CODE_REPLACED, reason=SESSION_REPLACED)
            except Exception as e:
                logger.debug(f"Error closing displaced channel of {identity}: {e}")
        return True

    async def on_join(self, identity: str, room_id: str, payload: Any):
        deliveries = self._leave_current_room(identity)

        self.connections.set_room(identity, room_id)
        result = self.rooms.join(room_id, identity, payload)
        if result.room_full:
            self.connections.set_room(identity, None)

        await deliver(self.connections, deliveries)
        await send_if_present(self.connections, identity, {"type": MSG_JOIN, "plays": result.plays})

    async def on_quit(self, identity: str, room_id: str):
        current = self.connections.room_of(identity)
        if current != room_id:
            logger.warning(f"Ignoring quit of room {room_id} from {identity}, current room is {current}")
            return
        await deliver(self.connections, self._leave_current_room(identity))

    async def on_close(self, identity: str):
        """Drop ``identity`` out of its room after its peer closed the call."""
        await deliver(self.connections, self._leave_current_room(identity))

    async def on_disconnect(self, identity: str, channel=None):
        """Tear down everything ``identity`` owns and announce the departure to everyone else.

        When ``channel`` is given and no longer bound to ``identity`` (the session
        was replaced), the newer session is left alone.
        """
        entry = self.connections.get(identity)
        if entry is None:
            return
        if channel is not None and entry.channel is not channel:
            logger.debug(f"Ignoring disconnect of a replaced session of {identity}")
            return

        deliveries = self._leave_current_room(identity)
        self.connections.unregister(identity)
        deliveries.extend(
            Delivery(other, {"type": MSG_LEAVE, "key": identity})
            for other in self.connections.identities()
        )
        logger.info(f"Identity {identity} disconnected ({len(self.connections)} online)")

        await deliver(self.connections, deliveries)

    def _leave_current_room(self, identity: str) -> List[Delivery]:
        room_id: Optional[str] = self.connections.room_of(identity)
        if room_id is None:
            return []
        self.connections.set_room(identity, None)
        return self.rooms.leave(room_id, identity)
