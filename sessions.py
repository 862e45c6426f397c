from backend import Connection, RoomRegistry, Session, normalize_room_code, registry
from exceptions import AlreadyInRoom, RoomFull, RoomNotFound
from logging_config import get_logger
from schemas.messages import (
    HostLeftMessage,
    PeerJoinedMessage,
    PeerLeftMessage,
    Role,
    RoomCreatedMessage,
    RoomJoinedMessage,
)

logger = get_logger(__name__)


class SessionManager:
    """Creates, joins and tears down two-party rooms.

    A connection is in one of three states: unaffiliated, hosting a room or
    joined to one as its peer. Every membership change goes through
    ``create``, ``join`` or ``leave``; a transport disconnect is a ``leave``.

    Rooms are owned by their host. A departing peer leaves the room open for
    a replacement, while a departing host always closes it (after telling
    the peer).
    """

    def __init__(self, room_registry: RoomRegistry):
        self.registry = room_registry

    async def create(self, connection: Connection) -> Session:
        if connection.session_code is not None:
            logger.info(f"Connection {connection.id} creating a room while in {connection.session_code}, leaving first")
            await self.leave(connection)

        # allocate and put run without an await in between, so no lock is needed
        room_code = self.registry.allocate()
        session = Session(code=room_code, host=connection, members={connection.id})
        self.registry.put(room_code, session)
        connection.affiliate(room_code, Role.HOST)
        logger.info(f"Room created: {room_code} by host {connection.id}")

        await connection.send(RoomCreatedMessage(room_code=room_code))
        return session

    async def join(self, connection: Connection, room_code: str) -> Session:
        room_code = normalize_room_code(room_code)
        session = self.registry.get(room_code)
        if session is None:
            logger.info(f"Join failed: room {room_code} not found (connection {connection.id})")
            raise RoomNotFound(room_code)
        if connection.session_code == room_code:
            logger.info(f"Join failed: connection {connection.id} is already in room {room_code}")
            raise AlreadyInRoom(room_code)
        if session.is_full:
            logger.info(f"Join failed: room {room_code} is full (connection {connection.id})")
            raise RoomFull(room_code)

        # Claim the peer slot before the first await so a concurrent join sees the room as full
        session.peer = connection
        session.members.add(connection.id)

        if connection.session_code is not None:
            await self.leave(connection)

        async with session.lock:
            # The host may have closed the room while we were leaving the old one
            if self.registry.get(room_code) is not session or session.peer is not connection:
                connection.clear_affiliation()
                raise RoomNotFound(room_code)

            connection.affiliate(room_code, Role.PEER)
            logger.info(f"Peer {connection.id} joined room {room_code}")

            await connection.send(RoomJoinedMessage(room_code=room_code))
            if session.host is not None:
                await session.host.send(PeerJoinedMessage())
        return session

    async def leave(self, connection: Connection):
        room_code = connection.session_code
        role = connection.role
        if room_code is None:
            return

        session = self.registry.get(room_code)
        if session is None:
            connection.clear_affiliation()
            return

        async with session.lock:
            if self.registry.get(room_code) is not session:
                # Torn down by the host while we waited for the lock
                connection.clear_affiliation()
                return

            session.members.discard(connection.id)

            if role is Role.HOST:
                await self._close_for_host(session)
            else:
                session.peer = None
                if not session.members:
                    self.registry.remove(room_code)
                    logger.info(f"Room {room_code} deleted (empty)")
                else:
                    logger.info(f"Peer {connection.id} left room {room_code}")
                    if session.host is not None:
                        await session.host.send(PeerLeftMessage())

        connection.clear_affiliation()

    async def _close_for_host(self, session: Session):
        peer = session.peer
        if peer is not None and peer.session_code != session.code:
            # Slot claimed by a join still in progress; that join will find the room gone
            peer = None
        if peer is not None:
            await peer.send(HostLeftMessage())
            peer.clear_affiliation()

        self.registry.remove(session.code)
        session.host = None
        session.peer = None
        session.members.clear()
        if peer is not None:
            logger.info(f"Room {session.code} deleted (host left, peer {peer.id} notified)")
        else:
            logger.info(f"Room {session.code} deleted (empty)")


session_manager = SessionManager(registry)
