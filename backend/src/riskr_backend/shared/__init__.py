"""Shared enums and value objects used across the backend."""

from riskr_backend.shared.enums import Move, RoomStatus
from riskr_backend.shared.value_objects import DRAW, Payout, PayoutReceipt

__all__ = [
    "DRAW",
    "Move",
    "Payout",
    "PayoutReceipt",
    "RoomStatus",
]
