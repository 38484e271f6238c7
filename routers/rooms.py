from fastapi import APIRouter, HTTPException, Query, Request
from schemas.rooms import PresenceResponse, RelayStatsResponse, RoomDetailsResponse
from typing import List
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(tags=["rooms"])


@rooms_router.get("/rooms", response_model=RelayStatsResponse)
async def get_relay_stats(request: Request):
    relay = request.app.state.message_router
    return RelayStatsResponse(
        rooms=len(relay.rooms),
        connections=len(relay.connections),
        capacity=relay.rooms.capacity,
    )


@rooms_router.get("/rooms/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Get the members of a live room.

    Returns:
    - room_id: Room identifier
    - members: Member identities in join order
    - member_count: Current number of members
    - capacity: Maximum members allowed
    - is_full: Whether the room has reached capacity
    """
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Room details request for {room_id} from {client_host}")

    rooms = request.app.state.message_router.rooms
    if room_id not in rooms:
        logger.info(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    members = rooms.members(room_id)
    return RoomDetailsResponse(
        room_id=room_id,
        members=members,
        member_count=len(members),
        capacity=rooms.capacity,
        is_full=len(members) >= rooms.capacity,
    )


@rooms_router.get("/presence", response_model=PresenceResponse)
async def get_presence(request: Request, ids: List[str] = Query(default=[])):
    connections = request.app.state.message_router.connections
    return PresenceResponse(online=[identity in connections for identity in ids])
