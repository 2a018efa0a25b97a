import random

import pytest

from xorng.messaging.router import MessageRouter
from xorng.session.registry import RoomRegistry
from xorng.session.room import Room
from xorng.tests.mocks import MockConnection


def make_room(code: str = "ABCDEF", seed: int = 1) -> Room:
    return Room(room_code=code, rng=random.Random(seed), clock=lambda: 1_700_000_000_000)


def seat_two(room: Room, first: str = "Ann", second: str = "Bob") -> tuple[str, str]:
    """Seat two players as conn-1 and conn-2 and return their connection ids."""
    for conn_id, name in (("conn-1", first), ("conn-2", second)):
        room.attach(MockConnection(conn_id))
        room.join(conn_id, name)
    return "conn-1", "conn-2"


def player_with(room: Room, symbol: str) -> str:
    """Return the connection id of the player holding symbol."""
    return next(p.id for p in room.players.values() if p.symbol == symbol)


@pytest.fixture
def room():
    return make_room()


@pytest.fixture
def registry():
    return RoomRegistry(rng=random.Random(42))


@pytest.fixture
def router(registry):
    return MessageRouter(registry)
