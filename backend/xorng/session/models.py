from dataclasses import dataclass

from xorng.logic.enums import Symbol


@dataclass
class Player:
    """A connection holding one of the room's two seats.

    symbol stays None until both seats are filled.
    """

    id: str
    name: str
    symbol: Symbol | None = None


@dataclass
class Spectator:
    id: str
    name: str


@dataclass
class ScoreEntry:
    """Running tally for one case-folded name, kept for the room's lifetime."""

    name: str
    wins: int = 0
    losses: int = 0
    draws: int = 0


@dataclass(frozen=True)
class LastMove:
    index: int
    tick: int  # wall-clock milliseconds


@dataclass(frozen=True)
class LastResult:
    winner: Symbol | None = None
    draw: bool = False


def name_key(name: str) -> str:
    """Key used for name uniqueness, scores and sticky symbols."""
    return name.casefold()


@dataclass
class ClientSession:
    """What the server knows about one connection.

    Owned by the message router and only ever changed while handling that
    connection's own messages or its disconnect.
    """

    client_id: str
    room_code: str | None = None
    name: str | None = None
