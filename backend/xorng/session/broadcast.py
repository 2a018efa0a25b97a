"""Room snapshot construction and best-effort fan-out to attached connections."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

from xorng.messaging.types import (
    LastMoveInfo,
    LastResultInfo,
    PlayerInfo,
    ScoreInfo,
    SpectatorInfo,
    StateMessage,
)

if TYPE_CHECKING:
    from xorng.session.room import Room


def build_snapshot(room: Room) -> StateMessage:
    last_move = room.last_move
    last_result = room.last_result
    return StateMessage(
        room_code=room.room_code,
        board=list(room.board),
        turn=room.turn,
        status=room.status,
        last_result=(
            LastResultInfo(winner=last_result.winner, draw=last_result.draw) if last_result is not None else None
        ),
        last_move=LastMoveInfo(index=last_move.index, tick=last_move.tick) if last_move is not None else None,
        players=[PlayerInfo(id=p.id, name=p.name, symbol=p.symbol) for p in room.players.values()],
        spectators=[SpectatorInfo(id=s.id, name=s.name) for s in room.spectators.values()],
        scores=[ScoreInfo(name=s.name, wins=s.wins, losses=s.losses, draws=s.draws) for s in room.sorted_scores()],
    )


async def publish(room: Room, message: dict[str, Any]) -> None:
    """Send message to every connection attached to the room.

    Closed peers are skipped and send failures are dropped; nothing is
    queued or retried. The connection set is copied first so a peer leaving
    mid-broadcast cannot break the iteration.
    """
    for connection in list(room.connections.values()):
        if not connection.is_open:
            continue
        with contextlib.suppress(RuntimeError, OSError, ConnectionError):
            await connection.send_message(message)


async def publish_state(room: Room) -> None:
    # Built before the first send, so every peer gets the same snapshot.
    await publish(room, build_snapshot(room).to_wire())
