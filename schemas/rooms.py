from pydantic import BaseModel


class RoomDetailsResponse(BaseModel):
    room_code: str
    has_host: bool
    has_peer: bool
    is_full: bool
    member_count: int


class RoomStatsResponse(BaseModel):
    active_rooms: int
