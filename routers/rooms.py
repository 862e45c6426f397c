from fastapi import APIRouter, HTTPException, Request

from backend import registry
from logging_config import get_logger
from schemas.rooms import RoomDetailsResponse, RoomStatsResponse

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("/", response_model=RoomStatsResponse)
async def get_room_stats():
    return RoomStatsResponse(active_rooms=len(registry))


@rooms_router.get("/{room_code}", response_model=RoomDetailsResponse)
async def get_room_details(room_code: str, request: Request):
    """
    Look up a room by code (case-insensitive) so a client can check it
    before opening a websocket to join.

    Returns:
    - room_code: Canonical (uppercase) room code
    - has_host: Whether the host is still attached
    - has_peer: Whether a peer has joined
    - is_full: Whether a join would be refused
    - member_count: Connections currently attributed to the room
    """
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Room details request for {room_code} from {client_host}")

    session = registry.get(room_code)
    if session is None:
        logger.info(f"Room details failed: Room {room_code} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(
        room_code=session.code,
        has_host=session.host is not None,
        has_peer=session.peer is not None,
        is_full=session.is_full,
        member_count=len(session.members),
    )
