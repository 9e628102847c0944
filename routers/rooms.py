from fastapi import APIRouter, Depends, Request
from deps import get_registry
from registry import SessionRegistry
from schemas.rooms import AllRoomsResponse, RoomInfoResponse
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/api/rooms", tags=["rooms"])


@rooms_router.get("", response_model=AllRoomsResponse)
async def get_all_rooms(request: Request, registry: SessionRegistry = Depends(get_registry)):
    """
    Snapshot of every live room.

    Returns a mapping of room id to:
    - userCount: Number of participants in the room
    - users: Participants in join order
    """
    client_host = request.client.host if request.client else 'unknown'
    rooms = registry.all_rooms()
    logger.debug(f"All rooms request from {client_host}: {len(rooms)} live rooms")
    return {
        room_id: RoomInfoResponse.from_participants(users)
        for room_id, users in rooms.items()
    }


@rooms_router.get("/{room_id}", response_model=RoomInfoResponse)
async def get_room_info(room_id: str, registry: SessionRegistry = Depends(get_registry)):
    # Unknown rooms are reported as empty rather than 404; empty rooms never exist.
    users = registry.list_room(room_id)
    logger.debug(f"Room info request for {room_id}: {len(users)} users")
    return RoomInfoResponse.from_participants(users)
