import json
from typing import Union

from pydantic import ValidationError

from backend import Connection, RoomRegistry, registry
from exceptions import MalformedMessage, MessageError, RoomError, UnknownMessageType
from logging_config import get_logger
from schemas.messages import (
    INBOUND_MESSAGE_TYPES,
    CreateRoomMessage,
    ErrorMessage,
    JoinRoomMessage,
    LeaveRoomMessage,
    RelayMessage,
    Role,
    SignalingMessage,
    inbound_message_adapter,
)
from sessions import SessionManager, session_manager

logger = get_logger(__name__)


def decode_message(raw: Union[str, bytes]) -> SignalingMessage:
    """Turn one websocket frame into a typed inbound message.

    Raises MalformedMessage for anything that is not a JSON object with a
    string ``type`` and valid fields, and UnknownMessageType for a
    well-formed envelope whose type this server does not handle.
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError (binary frames) are both ValueErrors
        raise MalformedMessage(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedMessage(f"Expected a JSON object, got {type(data).__name__}")

    message_type = data.get("type")
    if not isinstance(message_type, str):
        raise MalformedMessage("Message has no string 'type' field")
    if message_type not in INBOUND_MESSAGE_TYPES:
        raise UnknownMessageType(message_type)

    try:
        return inbound_message_adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedMessage(f"Invalid {message_type} message: {e.error_count()} validation error(s)") from e


class MessageRouter:
    """Dispatches decoded messages to the session manager or relays them to the other room member."""

    def __init__(self, sessions: SessionManager, room_registry: RoomRegistry):
        self.sessions = sessions
        self.registry = room_registry

    async def dispatch(self, connection: Connection, raw: Union[str, bytes]):
        try:
            message = decode_message(raw)
        except MessageError as e:
            logger.warning(f"Dropping message from connection {connection.id}: {e}")
            return

        logger.debug(f"Received {message.type} from {connection.id}")
        try:
            if isinstance(message, CreateRoomMessage):
                await self.sessions.create(connection)
            elif isinstance(message, JoinRoomMessage):
                await self.sessions.join(connection, message.room_code)
            elif isinstance(message, LeaveRoomMessage):
                await self.sessions.leave(connection)
            elif isinstance(message, RelayMessage):
                await self.relay(connection, message)
        except RoomError as e:
            logger.info(f"Refused {message.type} for connection {connection.id} (room {e.room_code}): {e}")
            await connection.send(ErrorMessage(message=str(e)))

    async def relay(self, connection: Connection, message: RelayMessage) -> bool:
        """Forward an offer/answer/ice-candidate to the other member, tagged with the sender's role.

        Returns whether the message was delivered. Nothing is reported to the
        sender either way.
        """
        if connection.session_code is None:
            logger.debug(f"Dropping {message.type} from unaffiliated connection {connection.id}")
            return False

        session = self.registry.get(connection.session_code)
        if session is None:
            logger.debug(f"Dropping {message.type} from {connection.id}: room {connection.session_code} is gone")
            return False

        target = session.peer if connection.role is Role.HOST else session.host
        if target is None or target.session_code != session.code:
            logger.debug(f"Dropping {message.type} from {connection.role.value} in room {session.code}: no one to receive it")
            return False

        forwarded = message.with_sender_role(connection.role)
        delivered = await target.send(forwarded)
        if delivered:
            logger.debug(f"Forwarded {message.type} from {connection.role.value} to {target.role.value} in room {session.code}")
        return delivered


message_router = MessageRouter(session_manager, registry)
