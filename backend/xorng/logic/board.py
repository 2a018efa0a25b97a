"""
Pure tic-tac-toe board rules.

A board is a sequence of nine cells in row-major order. Each cell holds
"X", "O" or EMPTY. None of these functions touch room or connection state.
"""

import random
from collections.abc import Sequence

from xorng.logic.enums import Symbol

EMPTY = ""
BOARD_SIZE = 9

# Rows, then columns, then the two diagonals.
WINNING_LINES: tuple[tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

# A move writes one of these, chosen uniformly, regardless of who moved.
MOVE_OUTCOMES: tuple[str, ...] = (Symbol.X.value, Symbol.O.value, EMPTY)


def empty_board() -> list[str]:
    return [EMPTY] * BOARD_SIZE


def winning_line(board: Sequence[str]) -> tuple[int, int, int] | None:
    """Return the first line whose three cells hold the same symbol, or None."""
    for line in WINNING_LINES:
        a, b, c = line
        if board[a] != EMPTY and board[a] == board[b] == board[c]:
            return line
    return None


def winner(board: Sequence[str]) -> Symbol | None:
    line = winning_line(board)
    if line is None:
        return None
    return Symbol(board[line[0]])


def is_full(board: Sequence[str]) -> bool:
    return all(cell != EMPTY for cell in board)


def is_valid_index(index: int) -> bool:
    return 0 <= index < BOARD_SIZE


def random_mark(rng: random.Random) -> str:
    """Pick the value written by an accepted move: X, O or EMPTY."""
    return rng.choice(MOVE_OUTCOMES)


def shuffled_symbols(rng: random.Random) -> list[Symbol]:
    """Return [X, O] in a uniformly random order."""
    symbols = [Symbol.X, Symbol.O]
    rng.shuffle(symbols)
    return symbols


def other(symbol: Symbol) -> Symbol:
    return Symbol.O if symbol == Symbol.X else Symbol.X
