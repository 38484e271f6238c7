from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional

from constants import ROOM_CAPACITY
from logging_config import get_logger
from message_types import MSG_QUIT

logger = get_logger(__name__)


class Delivery(NamedTuple):
    """An outbound message addressed to an identity, sent after the mutation that produced it."""
    target: str
    message: dict


class JoinResult(NamedTuple):
    accepted: bool
    plays: Optional[List[Any]] = None

    @property
    def room_full(self) -> bool:
        return not self.accepted


@dataclass
class Connection:
    identity: str
    channel: Any
    room: Optional[str] = None


class ConnectionRegistry:
    """Single authoritative table of identity -> current channel and room.

    The registry only maps channels, it never opens or closes them.
    """

    def __init__(self):
        self._entries: Dict[str, Connection] = {}

    def register(self, identity: str, channel) -> Optional[Connection]:
        """Bind ``identity`` to ``channel``, replacing any previous binding.

        Returns the displaced entry so the caller can clean up after it.
        """
        previous = self._entries.get(identity)
        self._entries[identity] = Connection(identity=identity, channel=channel)
        if previous:
            logger.debug(f"Identity {identity} re-registered, previous binding displaced")
        else:
            logger.debug(f"Identity {identity} registered ({len(self._entries)} connections)")
        return previous

    def lookup(self, identity: str):
        entry = self._entries.get(identity)
        return entry.channel if entry else None

    def get(self, identity: str) -> Optional[Connection]:
        return self._entries.get(identity)

    def room_of(self, identity: str) -> Optional[str]:
        entry = self._entries.get(identity)
        return entry.room if entry else None

    def set_room(self, identity: str, room_id: Optional[str]):
        entry = self._entries.get(identity)
        if entry is None:
            logger.debug(f"set_room ignored for unregistered identity {identity}")
            return
        entry.room = room_id

    def unregister(self, identity: str) -> Optional[str]:
        """Remove ``identity`` and return the room it was in, if any."""
        entry = self._entries.pop(identity, None)
        if entry is None:
            return None
        logger.debug(f"Identity {identity} unregistered ({len(self._entries)} connections)")
        return entry.room

    def identities(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, identity) -> bool:
        return identity in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class RoomRegistry:
    """Rooms of ordered identity -> payload members, created on first join and dropped when empty."""

    def __init__(self, capacity: int = ROOM_CAPACITY):
        self.capacity = capacity
        # Format: {room_id: {identity: payload}}, dicts keep join order
        self._rooms: Dict[str, Dict[str, Any]] = {}

    def join(self, room_id: str, identity: str, payload: Any) -> JoinResult:
        """Add ``identity`` to ``room_id`` and return the payloads of the members already there.

        A full room is left untouched and yields a room-full result.
        """
        members = self._rooms.setdefault(room_id, {})

        # A member joining again keeps its single slot and its position; the
        # snapshot still excludes the joiner and capacity is not re-checked
        if identity in members:
            snapshot = [play for key, play in members.items() if key != identity]
            members[identity] = payload
            logger.debug(f"Identity {identity} refreshed its payload in room {room_id}")
            return JoinResult(accepted=True, plays=snapshot)

        if len(members) >= self.capacity:
            logger.info(f"Join rejected: room {room_id} is full ({len(members)}/{self.capacity})")
            return JoinResult(accepted=False)

        snapshot = list(members.values())
        members[identity] = payload
        logger.info(f"Identity {identity} joined room {room_id} ({len(members)}/{self.capacity})")
        return JoinResult(accepted=True, plays=snapshot)

    def leave(self, room_id: str, identity: str) -> List[Delivery]:
        """Remove ``identity`` from ``room_id`` and address a quit notice to everyone left."""
        members = self._rooms.get(room_id)
        if members is None or identity not in members:
            return []

        del members[identity]
        logger.info(f"Identity {identity} left room {room_id} ({len(members)}/{self.capacity})")

        if not members:
            del self._rooms[room_id]
            logger.info(f"Room {room_id} is empty, removing it")
            return []

        return [Delivery(key, {"type": MSG_QUIT, "key": identity}) for key in members]

    def members(self, room_id: str) -> List[str]:
        return list(self._rooms.get(room_id, {}))

    def get(self, room_id: str) -> Optional[Dict[str, Any]]:
        members = self._rooms.get(room_id)
        return dict(members) if members is not None else None

    def is_member(self, room_id: str, identity: str) -> bool:
        return identity in self._rooms.get(room_id, {})

    def __contains__(self, room_id) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
