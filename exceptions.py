class SignalingError(Exception):
    """Base class for every error raised while handling a signaling message."""


class RoomError(SignalingError):
    """User facing: reported back to the requesting connection as an ``error`` message."""

    message = "Room error"

    def __init__(self, room_code: str = None):
        self.room_code = room_code
        super().__init__(self.message)


class RoomNotFound(RoomError):
    message = "Room not found"


class RoomFull(RoomError):
    message = "Room is full"


class AlreadyInRoom(RoomError):
    message = "Already in this room"


class MessageError(SignalingError):
    """Operator facing: logged and dropped, the connection stays open."""


class MalformedMessage(MessageError):
    pass


class UnknownMessageType(MessageError):
    def __init__(self, message_type: str):
        self.message_type = message_type
        super().__init__(f"Unknown message type: {message_type}")
