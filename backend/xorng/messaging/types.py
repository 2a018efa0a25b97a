from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from xorng.logic.enums import Role, RoomStatus, Symbol


class ClientMessageType(StrEnum):
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    RESET = "reset"
    MOVE = "move"


class ServerMessageType(StrEnum):
    HELLO = "hello"
    ROOM_CREATED = "room_created"
    ROOM_JOINED = "room_joined"
    STATE = "state"
    ERROR = "error"


class ErrorReason(StrEnum):
    """Human-readable error texts carried in error{message}."""

    INVALID_JSON = "Invalid JSON"
    MESSAGE_TOO_LARGE = "Message too large"
    UNKNOWN_MESSAGE_TYPE = "Unknown message type"
    INVALID_MESSAGE = "Invalid message"
    ROOM_NOT_FOUND = "Room not found"
    NOT_IN_ROOM = "Not in a room"
    ROOM_MISSING = "Room missing"
    AT_CAPACITY = "Server at capacity"


class WireModel(BaseModel):
    """Base for wire messages: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# --- client -> server ---


def _number_to_text(v: object) -> object:
    """Render a JSON number as text so numeric names and codes are accepted."""
    if isinstance(v, bool):
        return v
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    if isinstance(v, int | float):
        return str(v)
    return v


class CreateRoomMessage(WireModel):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM
    name: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, v: object) -> object:
        return _number_to_text(v)


class JoinRoomMessage(WireModel):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    room_code: str = ""
    name: str | None = None

    @field_validator("room_code", mode="before")
    @classmethod
    def _normalize_room_code(cls, v: object) -> object:
        if v is None:
            return ""
        v = _number_to_text(v)
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, v: object) -> object:
        return _number_to_text(v)


class ResetMessage(WireModel):
    type: Literal[ClientMessageType.RESET] = ClientMessageType.RESET


class MoveMessage(WireModel):
    type: Literal[ClientMessageType.MOVE] = ClientMessageType.MOVE
    index: int | None = None

    @field_validator("index", mode="before")
    @classmethod
    def _coerce_index(cls, v: object) -> int | None:
        """Accept integers, integral floats and integral numeric strings; anything else becomes None.

        A None index is an illegal move and is ignored by the room.
        """
        if isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        if isinstance(v, str):
            # float() would also take digit separators like "0_4".
            if "_" in v:
                return None
            try:
                v = float(v.strip())
            except ValueError:
                return None
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return None


ClientMessage = Annotated[
    CreateRoomMessage | JoinRoomMessage | ResetMessage | MoveMessage,
    Field(discriminator="type"),
]

_client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)
_CLIENT_MESSAGE_TYPES = frozenset(ClientMessageType)


class UnknownMessageTypeError(ValueError):
    """The message has no type field, or one the server does not handle."""


def parse_client_message(data: dict[str, Any]) -> CreateRoomMessage | JoinRoomMessage | ResetMessage | MoveMessage:
    """Validate a decoded JSON object into a typed client message.

    Raises UnknownMessageTypeError for an unrecognised type and
    pydantic.ValidationError for malformed fields.
    """
    message_type = data.get("type")
    if not isinstance(message_type, str) or message_type not in _CLIENT_MESSAGE_TYPES:
        raise UnknownMessageTypeError(f"unknown message type: {message_type!r}")
    return _client_message_adapter.validate_python(data)


# --- server -> client ---


class HelloMessage(WireModel):
    type: Literal[ServerMessageType.HELLO] = ServerMessageType.HELLO
    client_id: str


class RoomEnteredMessage(WireModel):
    """Sent to the requester after create_room (room_created) or join_room (room_joined)."""

    type: Literal[ServerMessageType.ROOM_CREATED, ServerMessageType.ROOM_JOINED]
    room_code: str
    role: Role
    name: str


class ErrorMessage(WireModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    message: str


class PlayerInfo(WireModel):
    id: str
    name: str
    symbol: Symbol | None


class SpectatorInfo(WireModel):
    id: str
    name: str


class ScoreInfo(WireModel):
    name: str
    wins: int
    losses: int
    draws: int


class LastMoveInfo(WireModel):
    index: int
    tick: int


class LastResultInfo(WireModel):
    winner: Symbol | None
    draw: bool


class StateMessage(WireModel):
    """Read-only snapshot of a room, broadcast after every accepted mutation."""

    type: Literal[ServerMessageType.STATE] = ServerMessageType.STATE
    room_code: str
    board: list[str]
    turn: Symbol
    status: RoomStatus
    last_result: LastResultInfo | None
    last_move: LastMoveInfo | None
    players: list[PlayerInfo]
    spectators: list[SpectatorInfo]
    scores: list[ScoreInfo]
