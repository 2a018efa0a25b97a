"""In-process table of live rooms, keyed by room code."""

import random

import structlog

from xorng.session.identity import random_code
from xorng.session.room import Room

logger = structlog.get_logger()

ROOM_CODE_LENGTH = 6


class RoomCapacityError(Exception):
    """Raised when creating a room would exceed the configured room limit."""


class RoomRegistry:
    """Create, look up and destroy rooms.

    Constructed once at startup and handed to the connection layer. Every
    read and write happens inline within one message-processing turn.
    """

    def __init__(self, rng: random.Random | None = None, max_rooms: int | None = None) -> None:
        self._rooms: dict[str, Room] = {}
        self._rng = rng or random.SystemRandom()
        self._max_rooms = max_rooms

    @property
    def rng(self) -> random.Random:
        return self._rng

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def connection_count(self) -> int:
        return sum(len(room.connections) for room in self._rooms.values())

    def create(self) -> Room:
        """Store a new waiting room under a code no live room is using."""
        if self._max_rooms is not None and len(self._rooms) >= self._max_rooms:
            raise RoomCapacityError(f"room limit of {self._max_rooms} reached")

        code = random_code(ROOM_CODE_LENGTH, self._rng)
        while code in self._rooms:
            code = random_code(ROOM_CODE_LENGTH, self._rng)

        room = Room(room_code=code, rng=self._rng)
        self._rooms[code] = room
        logger.info("room created", room_code=code, room_count=len(self._rooms))
        return room

    def get(self, room_code: str) -> Room | None:
        return self._rooms.get(room_code)

    def destroy_if_empty(self, room_code: str) -> bool:
        """Drop the room once no connection is attached. Returns True if it was removed.

        Sticky symbols and scores live on the room, so they go with it.
        """
        room = self._rooms.get(room_code)
        if room is None or not room.is_empty:
            return False
        del self._rooms[room_code]
        logger.info("room destroyed", room_code=room_code, room_count=len(self._rooms))
        return True
