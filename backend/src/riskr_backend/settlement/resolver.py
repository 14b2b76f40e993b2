"""Rock-paper-scissors outcome resolution."""

from __future__ import annotations

from riskr_backend.settlement.errors import InvalidMoveError
from riskr_backend.shared import DRAW, Move

# Each move maps to the move it defeats.
BEATS: dict[Move, Move] = {
    Move.ROCK: Move.SCISSORS,
    Move.SCISSORS: Move.PAPER,
    Move.PAPER: Move.ROCK,
}


def parse_move(value: object) -> Move:
    """Return *value* as a :class:`Move`, accepting case-insensitive strings."""
    if isinstance(value, Move):
        return value
    if isinstance(value, str):
        try:
            return Move(value.strip().upper())
        except ValueError:
            pass
    raise InvalidMoveError(value)


def winning_move(move_a: Move, move_b: Move) -> Move | None:
    """Return the dominating move of the pair, or ``None`` when they tie."""
    first = parse_move(move_a)
    second = parse_move(move_b)
    if first is second:
        return None
    return first if BEATS[first] is second else second


def resolve(move_a: Move, move_b: Move, id_a: str, id_b: str) -> str:
    """Return the id of the player whose move wins, or ``DRAW``.

    >>> resolve(Move.ROCK, Move.SCISSORS, "alice", "bob")
    'alice'
    """
    winner = winning_move(move_a, move_b)
    if winner is None:
        return DRAW
    return id_a if winner is parse_move(move_a) else id_b


__all__ = ["BEATS", "parse_move", "resolve", "winning_move"]
