import json
from typing import Optional, Union

from pydantic import BaseModel, ValidationError

from backend import ConnectionRegistry, RoomRegistry
from channels import send_if_present, send_to_channel
from lifecycle import LifecycleManager
from logging_config import get_logger
from message_types import (
    MSG_ANSWER, MSG_CANDIDATE, MSG_CLOSE, MSG_ERROR, MSG_FRIEND, MSG_JOIN, MSG_LEAVE, MSG_LOGIN,
    MSG_OFFER, MSG_ONLINE, MSG_QUIT, NOT_LOGGED_IN, OFFER_PASSTHROUGH_FIELDS, UNRECOGNIZED_COMMAND,
)
from schemas.messages import (
    AnswerMessage, CandidateMessage, CloseMessage, Envelope, FriendMessage, JoinMessage,
    LeaveMessage, LoginMessage, OfferMessage, OnlineMessage, QuitMessage,
)

logger = get_logger(__name__)


def decode_envelope(raw: Union[str, bytes, dict]) -> dict:
    """Parse an inbound frame; anything that is not a JSON object becomes an empty envelope."""
    if isinstance(raw, dict):
        return raw
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        logger.warning(f"Could not decode inbound frame: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Inbound frame is not a JSON object: {type(data).__name__}")
        return {}
    return data


class MessageRouter:
    """Dispatches inbound envelopes by ``type`` to direct forwards, presence replies or room lifecycle."""

    # Format: {type: (schema, handler method name)}
    HANDLERS = {
        MSG_OFFER: (OfferMessage, "_handle_offer"),
        MSG_ANSWER: (AnswerMessage, "_handle_answer"),
        MSG_CANDIDATE: (CandidateMessage, "_handle_candidate"),
        MSG_CLOSE: (CloseMessage, "_handle_close"),
        MSG_LEAVE: (LeaveMessage, "_handle_leave"),
        MSG_FRIEND: (FriendMessage, "_handle_friend"),
        MSG_ONLINE: (OnlineMessage, "_handle_online"),
        MSG_JOIN: (JoinMessage, "_handle_join"),
        MSG_QUIT: (QuitMessage, "_handle_quit"),
        MSG_LOGIN: (LoginMessage, "_handle_login"),
    }

    def __init__(self, connections: ConnectionRegistry, rooms: RoomRegistry, lifecycle: LifecycleManager):
        self.connections = connections
        self.rooms = rooms
        self.lifecycle = lifecycle

    async def send_if_present(self, identity: str, message: dict) -> bool:
        return await send_if_present(self.connections, identity, message)

    async def dispatch(self, source: str, raw: Union[str, bytes, dict]):
        """Handle one inbound frame from the channel bound to ``source``."""
        data = decode_envelope(raw)
        try:
            msg_type = Envelope.model_validate(data).type
        except ValidationError:
            msg_type = None

        handler_entry = self.HANDLERS.get(msg_type)
        if handler_entry is None:
            await self._reply_unrecognized(source, msg_type)
            return

        schema, method_name = handler_entry
        try:
            message = schema.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Malformed {msg_type} message from {source}: {e.error_count()} invalid field(s)")
            await self._reply_unrecognized(source, msg_type)
            return

        logger.debug(f"Routing {msg_type} from {source}")
        await getattr(self, method_name)(source, message)

    async def login(self, channel, raw: Union[str, bytes, dict]) -> Optional[str]:
        """Bind an anonymous channel from its first ``login`` frame.

        Returns the identity on success, otherwise None and the channel stays anonymous.
        """
        data = decode_envelope(raw)
        if data.get("type") != MSG_LOGIN:
            await send_to_channel(channel, {"type": MSG_ERROR, "message": NOT_LOGGED_IN})
            return None
        try:
            message = LoginMessage.model_validate(data)
        except ValidationError:
            logger.warning("Malformed login message")
            await send_to_channel(channel, {"type": MSG_LOGIN, "success": False})
            return None

        logger.info(f"User logged in as {message.name}")
        success = await self.lifecycle.on_connect(message.name, channel)
        await send_to_channel(channel, {"type": MSG_LOGIN, "success": success})
        return message.name if success else None

    async def _reply_unrecognized(self, source: str, msg_type):
        logger.warning(f"Unrecognized message type from {source}: {msg_type}")
        await self.send_if_present(source, {
            "type": MSG_ERROR,
            "message": UNRECOGNIZED_COMMAND.format(type=msg_type),
        })

    async def _handle_offer(self, source: str, message: OfferMessage):
        logger.debug(f"offer - toId: {message.toId}, from: {source}")
        forwarded = {"type": MSG_OFFER, "offer": message.offer, "from": source}
        for field in OFFER_PASSTHROUGH_FIELDS:
            if field in message.model_fields_set:
                forwarded[field] = getattr(message, field)
        await self.send_if_present(message.toId, forwarded)

    async def _handle_answer(self, source: str, message: AnswerMessage):
        logger.debug(f"answer - toId: {message.toId}, from: {source}")
        await self.send_if_present(message.toId, {"type": MSG_ANSWER, "answer": message.answer, "from": source})

    async def _handle_candidate(self, source: str, message: CandidateMessage):
        logger.debug(f"candidate - toId: {message.toId}, from: {source}")
        await self.send_if_present(message.toId, {
            "type": MSG_CANDIDATE,
            "candidate": message.candidate,
            "from": source,
        })

    async def _handle_close(self, source: str, message: CloseMessage):
        logger.debug(f"close - toId: {message.toId}, from: {source}")
        await self.send_if_present(message.toId, {"type": MSG_CLOSE})
        await self.lifecycle.on_close(message.toId)

    async def _handle_leave(self, source: str, message: LeaveMessage):
        # Direct hang-up between two peers; room membership is untouched
        logger.debug(f"leave - toId: {message.toId}, from: {source}")
        await self.send_if_present(message.toId, {"type": MSG_LEAVE, "key": source})

    async def _handle_friend(self, source: str, message: FriendMessage):
        await self.send_if_present(message.toId, {
            "type": MSG_FRIEND,
            "name": message.name,
            "img": message.img,
            "account_id": message.account_id,
        })

    async def _handle_online(self, source: str, message: OnlineMessage):
        online = [identity in self.connections for identity in message.ids]
        await self.send_if_present(source, {"type": MSG_ONLINE, "online": online})

    async def _handle_join(self, source: str, message: JoinMessage):
        await self.lifecycle.on_join(source, message.room, message.play)

    async def _handle_quit(self, source: str, message: QuitMessage):
        await self.lifecycle.on_quit(source, message.room)

    async def _handle_login(self, source: str, message: BaseModel):
        # The identity of a channel never changes once bound
        logger.warning(f"Ignoring login from already bound identity {source}")
        await self.send_if_present(source, {"type": MSG_LOGIN, "success": False})


def create_message_router(room_capacity: int, registration_policy: str) -> MessageRouter:
    """Build a router over fresh, isolated registries."""
    connections = ConnectionRegistry()
    rooms = RoomRegistry(capacity=room_capacity)
    lifecycle = LifecycleManager(connections, rooms, registration_policy=registration_policy)
    return MessageRouter(connections, rooms, lifecycle)
