from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    HOST = "host"
    PEER = "peer"


class SignalingMessage(BaseModel):
    # snake_case in Python, camelCase on the wire (roomCode, senderRole)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# Inbound

class CreateRoomMessage(SignalingMessage):
    type: Literal["create-room"] = "create-room"


class JoinRoomMessage(SignalingMessage):
    type: Literal["join-room"] = "join-room"
    room_code: str


class LeaveRoomMessage(SignalingMessage):
    type: Literal["leave-room"] = "leave-room"


class RelayMessage(SignalingMessage):
    """offer / answer / ice-candidate; everything but ``type`` is opaque and kept as sent."""

    model_config = ConfigDict(extra="allow")

    type: Literal["offer", "answer", "ice-candidate"]

    def with_sender_role(self, role: Role) -> "RelayMessage":
        """Copy of this message, as received, with ``senderRole`` set by the server."""
        return RelayMessage.model_validate({**self.to_wire(), "senderRole": role.value})


InboundMessage = Annotated[
    Union[CreateRoomMessage, JoinRoomMessage, LeaveRoomMessage, RelayMessage],
    Field(discriminator="type"),
]

inbound_message_adapter = TypeAdapter(InboundMessage)

LIFECYCLE_MESSAGE_TYPES = frozenset({"create-room", "join-room", "leave-room"})
RELAY_MESSAGE_TYPES = frozenset({"offer", "answer", "ice-candidate"})
INBOUND_MESSAGE_TYPES = LIFECYCLE_MESSAGE_TYPES | RELAY_MESSAGE_TYPES


# Outbound

class RoomCreatedMessage(SignalingMessage):
    type: Literal["room-created"] = "room-created"
    room_code: str
    role: Role = Role.HOST


class RoomJoinedMessage(SignalingMessage):
    type: Literal["room-joined"] = "room-joined"
    room_code: str
    role: Role = Role.PEER


class ErrorMessage(SignalingMessage):
    type: Literal["error"] = "error"
    message: str


class PeerJoinedMessage(SignalingMessage):
    type: Literal["peer-joined"] = "peer-joined"
    role: Role = Role.HOST


class PeerLeftMessage(SignalingMessage):
    type: Literal["peer-left"] = "peer-left"
    role: Role = Role.HOST


class HostLeftMessage(SignalingMessage):
    type: Literal["host-left"] = "host-left"
    message: str = "Host has left the room"
