from pydantic import BaseModel, ConfigDict
from typing import Any, Optional


class Envelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None


class DirectMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    toId: str


class OfferMessage(DirectMessage):
    offer: Any
    media: Optional[Any] = None
    isMeta: Optional[Any] = None
    play: Optional[Any] = None

class AnswerMessage(DirectMessage):
    answer: Any

class CandidateMessage(DirectMessage):
    candidate: Any

class CloseMessage(DirectMessage):
    pass

class LeaveMessage(DirectMessage):
    pass

class FriendMessage(DirectMessage):
    name: Any
    img: Any
    account_id: Any

class OnlineMessage(BaseModel):
    ids: list[str]

class JoinMessage(BaseModel):
    room: str
    play: Optional[Any] = None

class QuitMessage(BaseModel):
    room: str

class LoginMessage(BaseModel):
    name: str
