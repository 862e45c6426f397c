import asyncio
import json
import secrets
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from fastapi.websockets import WebSocket, WebSocketState

from constants import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH
from logging_config import get_logger
from schemas.messages import Role, SignalingMessage

logger = get_logger(__name__)


def normalize_room_code(room_code: str) -> str:
    return room_code.strip().upper()


def generate_room_code(length: int = ROOM_CODE_LENGTH, alphabet: str = ROOM_CODE_ALPHABET) -> str:
    return ''.join(secrets.choice(alphabet) for _ in range(length))


class Connection:
    """One live WebSocket and its room affiliation.

    The websocket is borrowed from the endpoint that accepted it; the
    registry only sends through it and checks whether it is still open.
    """

    def __init__(self, websocket: WebSocket):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.session_code: Optional[str] = None
        self.role: Optional[Role] = None

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def affiliate(self, session_code: str, role: Role):
        self.session_code = session_code
        self.role = role

    def clear_affiliation(self):
        self.session_code = None
        self.role = None

    async def send(self, message: SignalingMessage) -> bool:
        """Deliver a message, returning False instead of raising when the socket is gone."""
        if not self.is_open:
            logger.debug(f"Skipping {message.type} to closed connection {self.id}")
            return False
        try:
            await self.websocket.send_text(json.dumps(message.to_wire()))
        except Exception as e:
            logger.warning(f"Error sending {message.type} to connection {self.id}: {e}")
            return False
        return True

    def __repr__(self):
        return f"Connection(id={self.id!r}, session_code={self.session_code!r}, role={self.role})"


@dataclass(eq=False)
class Session:
    code: str
    host: Optional[Connection] = None
    peer: Optional[Connection] = None
    members: Set[str] = field(default_factory=set)
    # Guards check-then-act sequences (join, leave) across await points
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def is_full(self) -> bool:
        return self.peer is not None


class RoomRegistry:
    """In-memory map of room code to Session, shared by every connection handler."""

    def __init__(self):
        self._rooms: Dict[str, Session] = {}
        logger.info("Initializing in-memory RoomRegistry")

    def allocate(self) -> str:
        attempts = 0
        while True:
            attempts += 1
            room_code = generate_room_code()
            if room_code not in self._rooms:
                if attempts > 1:
                    logger.debug(f"Allocated room code {room_code} after {attempts} attempts")
                return room_code

    def put(self, room_code: str, session: Session):
        self._rooms[normalize_room_code(room_code)] = session
        logger.debug(f"Stored room {room_code} ({len(self._rooms)} active)")

    def get(self, room_code: str) -> Optional[Session]:
        return self._rooms.get(normalize_room_code(room_code))

    def remove(self, room_code: str) -> Optional[Session]:
        session = self._rooms.pop(normalize_room_code(room_code), None)
        if session is not None:
            logger.debug(f"Removed room {room_code} ({len(self._rooms)} active)")
        return session

    def __contains__(self, room_code: str) -> bool:
        return normalize_room_code(room_code) in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)


registry = RoomRegistry()
