from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from xorng.logic.enums import Role
from xorng.messaging.encoder import DEFAULT_MAX_MESSAGE_BYTES, DecodeError, decode
from xorng.messaging.types import (
    CreateRoomMessage,
    ErrorMessage,
    ErrorReason,
    HelloMessage,
    JoinRoomMessage,
    ResetMessage,
    RoomEnteredMessage,
    ServerMessageType,
    UnknownMessageTypeError,
    parse_client_message,
)
from xorng.session.broadcast import publish_state
from xorng.session.identity import normalize_name, uniquify
from xorng.session.models import ClientSession
from xorng.session.registry import RoomCapacityError

if TYPE_CHECKING:
    from typing import Any

    from xorng.messaging.protocol import ConnectionProtocol
    from xorng.session.registry import RoomRegistry
    from xorng.session.room import Room

logger = structlog.get_logger()


class MessageRouter:
    """
    Per-connection protocol dispatch.

    Maps inbound messages to room operations and broadcasts the resulting
    snapshot. Contains no transport code, so it can be tested with mock
    connections.

    Every inbound message and every disconnect is handled under one lock:
    each runs to completion, broadcast included, before the next begins.
    """

    def __init__(self, registry: RoomRegistry, *, max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES) -> None:
        self._registry = registry
        self._max_message_bytes = max_message_bytes
        self._sessions: dict[str, ClientSession] = {}  # connection_id -> ClientSession
        self._turn_lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._sessions)

    def get_session(self, connection_id: str) -> ClientSession | None:
        return self._sessions.get(connection_id)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._sessions[connection.connection_id] = ClientSession(client_id=connection.connection_id)
        await connection.send_message(HelloMessage(client_id=connection.connection_id).to_wire())

    async def handle_text(self, connection: ConnectionProtocol, raw: str) -> None:
        """Decode one text frame and dispatch it."""
        async with self._turn_lock:
            try:
                data = decode(raw, self._max_message_bytes)
            except DecodeError as e:
                logger.warning("decode error", connection_id=connection.connection_id, error=str(e))
                await self._send_error(connection, str(e))
                return
            await self._dispatch(connection, data)

    async def handle_message(self, connection: ConnectionProtocol, data: dict[str, Any]) -> None:
        """Dispatch an already-decoded message."""
        async with self._turn_lock:
            await self._dispatch(connection, data)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        """Detach the connection from its room and forget it. Safe to call more than once."""
        async with self._turn_lock:
            session = self._sessions.pop(connection.connection_id, None)
            if session is not None:
                await self._leave_room(connection.connection_id, session)

    async def _dispatch(self, connection: ConnectionProtocol, data: dict[str, Any]) -> None:
        session = self._sessions.get(connection.connection_id)
        if session is None:
            # Message raced with disconnect cleanup.
            return

        try:
            message = parse_client_message(data)
        except UnknownMessageTypeError as e:
            logger.warning("unknown message type", connection_id=connection.connection_id, error=str(e))
            await self._send_error(connection, ErrorReason.UNKNOWN_MESSAGE_TYPE)
            return
        except ValidationError as e:
            logger.warning("invalid message", connection_id=connection.connection_id, error=str(e))
            await self._send_error(connection, ErrorReason.INVALID_MESSAGE)
            return

        if isinstance(message, CreateRoomMessage):
            await self._handle_create_room(connection, session, message)
        elif isinstance(message, JoinRoomMessage):
            await self._handle_join_room(connection, session, message)
        else:
            room = await self._current_room(connection, session)
            if room is None:
                return
            if isinstance(message, ResetMessage):
                accepted = room.reset(connection.connection_id)
            else:
                accepted = room.move(connection.connection_id, message.index)
            # Rejected moves and resets are dropped without a reply.
            if accepted:
                await publish_state(room)

    async def _handle_create_room(
        self,
        connection: ConnectionProtocol,
        session: ClientSession,
        message: CreateRoomMessage,
    ) -> None:
        await self._leave_room(connection.connection_id, session)
        try:
            room = self._registry.create()
        except RoomCapacityError:
            logger.warning("room limit reached", connection_id=connection.connection_id)
            await self._send_error(connection, ErrorReason.AT_CAPACITY)
            return

        await self._enter_room(connection, session, room, message.name, ServerMessageType.ROOM_CREATED)

    async def _handle_join_room(
        self,
        connection: ConnectionProtocol,
        session: ClientSession,
        message: JoinRoomMessage,
    ) -> None:
        room = self._registry.get(message.room_code)
        if room is None:
            await self._send_error(connection, ErrorReason.ROOM_NOT_FOUND)
            return

        if session.room_code == room.room_code:
            # Rejoining the current room: detach in place so a lone occupant
            # does not destroy the room it is asking to enter.
            room.detach(connection.connection_id)
            session.room_code = None
            session.name = None
        else:
            await self._leave_room(connection.connection_id, session)

        await self._enter_room(connection, session, room, message.name, ServerMessageType.ROOM_JOINED)

    async def _enter_room(
        self,
        connection: ConnectionProtocol,
        session: ClientSession,
        room: Room,
        raw_name: str | None,
        reply_type: ServerMessageType,
    ) -> None:
        name = uniquify(room, normalize_name(raw_name, self._registry.rng))
        room.attach(connection)
        role = room.join(connection.connection_id, name)
        session.room_code = room.room_code
        session.name = name

        logger.info(
            "player joined room" if role == Role.PLAYER else "spectator joined room",
            room_code=room.room_code,
            connection_id=connection.connection_id,
            player_name=name,
        )
        await connection.send_message(
            RoomEnteredMessage(type=reply_type, room_code=room.room_code, role=role, name=name).to_wire(),
        )
        await publish_state(room)

    async def _current_room(self, connection: ConnectionProtocol, session: ClientSession) -> Room | None:
        if session.room_code is None:
            await self._send_error(connection, ErrorReason.NOT_IN_ROOM)
            return None
        room = self._registry.get(session.room_code)
        if room is None:
            await self._send_error(connection, ErrorReason.ROOM_MISSING)
            return None
        return room

    async def _leave_room(self, connection_id: str, session: ClientSession) -> None:
        room_code = session.room_code
        if room_code is None:
            return
        session.room_code = None
        session.name = None

        room = self._registry.get(room_code)
        if room is None or not room.detach(connection_id):
            return

        logger.info("connection left room", room_code=room_code, connection_id=connection_id)
        if not self._registry.destroy_if_empty(room_code):
            await publish_state(room)

    async def _send_error(self, connection: ConnectionProtocol, message: str) -> None:
        await connection.send_message(ErrorMessage(message=message).to_wire())
