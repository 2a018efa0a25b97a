"""Room aggregate: one board, two seats and any number of spectators.

All mutations are synchronous. Callers run them inside a single processing
turn and broadcast the resulting snapshot afterwards, so no partial state is
ever observable by another connection.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from xorng.logic import board as rules
from xorng.logic.enums import Role, RoomStatus, Symbol
from xorng.session.identity import remember_symbols, resolve_symbol
from xorng.session.models import LastMove, LastResult, Player, ScoreEntry, Spectator, name_key

if TYPE_CHECKING:
    from collections.abc import Callable

    from xorng.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()

SEATS = 2


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Room:
    """A game session identified by a short code.

    players and spectators are keyed by connection id. Insertion order of
    players is the seating order used when symbols are assigned.
    """

    room_code: str
    rng: random.Random = field(default_factory=random.SystemRandom, repr=False)
    clock: Callable[[], int] = field(default=_now_ms, repr=False)
    board: list[str] = field(default_factory=rules.empty_board)
    turn: Symbol = Symbol.X
    status: RoomStatus = RoomStatus.WAITING
    players: dict[str, Player] = field(default_factory=dict)
    spectators: dict[str, Spectator] = field(default_factory=dict)
    connections: dict[str, ConnectionProtocol] = field(default_factory=dict)
    scores: dict[str, ScoreEntry] = field(default_factory=dict)  # name_key -> ScoreEntry
    sticky_symbols: dict[str, Symbol] = field(default_factory=dict)  # name_key -> last symbol held
    last_move: LastMove | None = None
    last_result: LastResult | None = None

    @property
    def is_full(self) -> bool:
        return len(self.players) >= SEATS

    @property
    def is_empty(self) -> bool:
        return not self.connections

    def has_name(self, name: str) -> bool:
        key = name_key(name)
        return any(name_key(p.name) == key for p in self.players.values()) or any(
            name_key(s.name) == key for s in self.spectators.values()
        )

    def attach(self, connection: ConnectionProtocol) -> None:
        self.connections[connection.connection_id] = connection

    def join(self, connection_id: str, name: str) -> Role:
        """Seat the connection if a seat is open, otherwise add it as a spectator.

        name must already be unique within the room.
        """
        self.ensure_score(name)

        if self.is_full:
            self.spectators[connection_id] = Spectator(id=connection_id, name=name)
            return Role.SPECTATOR

        self.players[connection_id] = Player(id=connection_id, name=name, symbol=resolve_symbol(self, name))
        if self.is_full:
            if not self._has_distinct_symbols():
                self.assign_symbols()
            remember_symbols(self)
            self.status = RoomStatus.PLAYING
            self.last_result = None
            self.last_move = None
        else:
            self.status = RoomStatus.WAITING
        return Role.PLAYER

    def _has_distinct_symbols(self) -> bool:
        symbols = [p.symbol for p in self.players.values()]
        return None not in symbols and len(set(symbols)) == len(symbols)

    def assign_symbols(self) -> None:
        """Give the two seated players X and O in random order. X moves first."""
        if len(self.players) != SEATS:
            raise ValueError(f"assign_symbols needs exactly {SEATS} players, got {len(self.players)}")
        for player, symbol in zip(self.players.values(), rules.shuffled_symbols(self.rng), strict=True):
            player.symbol = symbol
        self.turn = Symbol.X

    def move(self, connection_id: str, index: int | None) -> bool:
        """Apply a move. Returns False, changing nothing, if the move is not allowed.

        The accepted cell receives a random value among X, O and empty; it is
        not necessarily the mover's symbol.
        """
        if self.status != RoomStatus.PLAYING:
            return False
        player = self.players.get(connection_id)
        if player is None or player.symbol != self.turn:
            return False
        if index is None or not rules.is_valid_index(index) or self.board[index] != rules.EMPTY:
            return False

        self.board[index] = rules.random_mark(self.rng)
        self.last_move = LastMove(index=index, tick=self.clock())

        winner = rules.winner(self.board)
        if winner is not None:
            self._finish(LastResult(winner=winner))
        elif rules.is_full(self.board):
            self._finish(LastResult(draw=True))
        else:
            self.turn = rules.other(self.turn)
        return True

    def _finish(self, result: LastResult) -> None:
        self.status = RoomStatus.OVER
        self.last_result = result
        self._record_result(result)
        logger.info("game over", room_code=self.room_code, winner=result.winner, draw=result.draw)

    def _record_result(self, result: LastResult) -> None:
        by_symbol = {p.symbol: p for p in self.players.values()}
        player_x = by_symbol.get(Symbol.X)
        player_o = by_symbol.get(Symbol.O)
        if player_x is None or player_o is None:
            return

        score_x = self.ensure_score(player_x.name)
        score_o = self.ensure_score(player_o.name)
        if result.draw:
            score_x.draws += 1
            score_o.draws += 1
        elif result.winner == Symbol.X:
            score_x.wins += 1
            score_o.losses += 1
        elif result.winner == Symbol.O:
            score_o.wins += 1
            score_x.losses += 1

    def reset(self, connection_id: str) -> bool:
        """Clear the board for a new game. Only seated players may reset."""
        if connection_id not in self.players:
            return False

        self.board = rules.empty_board()
        self.last_result = None
        self.last_move = None
        if self.is_full:
            self.assign_symbols()
            remember_symbols(self)
            self.status = RoomStatus.PLAYING
        else:
            self.status = RoomStatus.WAITING
            self.turn = Symbol.X
        return True

    def detach(self, connection_id: str) -> bool:
        """Remove a connection from every room set. Returns False if it was not attached.

        Board and last_result are left as they are. Whenever a connection
        leaves, player or spectator, status is recomputed from the seat count:
        playing with two seats filled, else waiting.
        """
        attached = self.connections.pop(connection_id, None) is not None
        self.players.pop(connection_id, None)
        self.spectators.pop(connection_id, None)
        if attached:
            self.status = RoomStatus.PLAYING if self.is_full else RoomStatus.WAITING
        return attached

    def ensure_score(self, name: str) -> ScoreEntry:
        """Return the score entry for name, creating it and refreshing its display casing."""
        key = name_key(name)
        entry = self.scores.get(key)
        if entry is None:
            entry = ScoreEntry(name=name)
            self.scores[key] = entry
        else:
            entry.name = name
        return entry

    def sorted_scores(self) -> list[ScoreEntry]:
        """Scores by wins descending, then losses ascending, then name."""
        return sorted(self.scores.values(), key=lambda s: (-s.wins, s.losses, name_key(s.name), s.name))
