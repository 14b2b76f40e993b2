"""Shared enumerations used across the backend."""

from enum import StrEnum


class Move(StrEnum):
    """Hand a player commits to when creating or joining a room."""

    ROCK = "ROCK"
    PAPER = "PAPER"
    SCISSORS = "SCISSORS"


class RoomStatus(StrEnum):
    """Lifecycle states of a wager room.

    ``WAITING`` is the only non-terminal state.
    """

    WAITING = "WAITING"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"
