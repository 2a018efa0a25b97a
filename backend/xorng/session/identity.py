"""
Display-name resolution within a room.

Names are trimmed, clipped to MAX_NAME_LENGTH and made case-insensitively
unique across a room's players and spectators by appending a random suffix.
Sticky symbols let a player who rejoins under the same name take back the
symbol they last held in that room.
"""

from __future__ import annotations

import random
import string
from typing import TYPE_CHECKING

from xorng.logic.enums import Symbol
from xorng.session.models import name_key

if TYPE_CHECKING:
    from xorng.session.room import Room

# Letters without I/O, digits without 0/1.
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
FALLBACK_ALPHABET = string.ascii_uppercase + string.digits

MAX_NAME_LENGTH = 16
GENERATED_NAME_PREFIX = "Player-"
SUFFIX_LENGTH = 4
MAX_SUFFIX_ATTEMPTS = 50
FALLBACK_SUFFIX_LENGTH = 8


def random_code(length: int, rng: random.Random, alphabet: str = CODE_ALPHABET) -> str:
    return "".join(rng.choice(alphabet) for _ in range(length))


def normalize_name(raw: str | None, rng: random.Random) -> str:
    name = (raw or "").strip()[:MAX_NAME_LENGTH].strip()
    if not name:
        return GENERATED_NAME_PREFIX + random_code(SUFFIX_LENGTH, rng)
    return name


def _with_suffix(base: str, suffix: str) -> str:
    # Clip the base, not the suffix, so the result always differs from base.
    return f"{base[: MAX_NAME_LENGTH - len(suffix) - 1]}-{suffix}"


def uniquify(room: Room, desired: str) -> str:
    """Return desired, or a suffixed variant no one in the room is using.

    Tries MAX_SUFFIX_ATTEMPTS short suffixes from CODE_ALPHABET, then keeps
    drawing wider suffixes until one is free.
    """
    if not room.has_name(desired):
        return desired

    for _ in range(MAX_SUFFIX_ATTEMPTS):
        candidate = _with_suffix(desired, random_code(SUFFIX_LENGTH, room.rng))
        if not room.has_name(candidate):
            return candidate

    while True:
        candidate = _with_suffix(desired, random_code(FALLBACK_SUFFIX_LENGTH, room.rng, FALLBACK_ALPHABET))
        if not room.has_name(candidate):
            return candidate


def resolve_symbol(room: Room, name: str) -> Symbol | None:
    return room.sticky_symbols.get(name_key(name))


def remember_symbols(room: Room) -> None:
    """Record each seated player's current symbol under their name."""
    for player in room.players.values():
        if player.symbol is not None:
            room.sticky_symbols[name_key(player.name)] = player.symbol
