from enum import StrEnum


class Symbol(StrEnum):
    X = "X"
    O = "O"  # noqa: E741


class RoomStatus(StrEnum):
    WAITING = "waiting"
    PLAYING = "playing"
    OVER = "over"


class Role(StrEnum):
    PLAYER = "player"
    SPECTATOR = "spectator"
