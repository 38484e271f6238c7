from pydantic import BaseModel


class RoomDetailsResponse(BaseModel):
    room_id: str
    members: list[str]
    member_count: int
    capacity: int
    is_full: bool

class RelayStatsResponse(BaseModel):
    rooms: int
    connections: int
    capacity: int

class PresenceResponse(BaseModel):
    online: list[bool]
