"""Domain errors raised by the settlement layer.

Every error carries a machine-readable ``kind`` and the HTTP status the API
layer answers with, so the boundary can translate them uniformly.
"""

from __future__ import annotations


class SettlementError(Exception):
    """Base class for all expected settlement failures."""

    kind = "settlement_error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidMoveError(SettlementError):
    """Raised when a move is not one of ROCK, PAPER or SCISSORS."""

    kind = "invalid_move"

    def __init__(self, move: object) -> None:
        self.move = move
        super().__init__(f"Invalid move {move!r}")


class InvalidAmountError(SettlementError):
    """Raised for non-positive bets or out of range fee rates."""

    kind = "invalid_amount"


class InvalidRequestError(SettlementError):
    """Raised when a required request field is missing or blank."""

    kind = "invalid_request"


class InvalidUsernameError(SettlementError):
    """Raised when a display name fails the length rules."""

    kind = "invalid_username"


class DepositUnverifiedError(SettlementError):
    """Raised when the gateway does not confirm a deposit proof."""

    kind = "deposit_unverified"
    status_code = 402


class GatewayUnavailableError(SettlementError):
    """Raised by gateways when the ledger cannot be reached or fails."""

    kind = "gateway_unavailable"
    status_code = 503


class RoomUnavailableError(SettlementError):
    """Raised when a room is missing, already joined or already cancelled."""

    kind = "room_unavailable"
    status_code = 409

    def __init__(self, room_id: str, reason: str = "Game unavailable") -> None:
        self.room_id = room_id
        super().__init__(reason)


class CooldownActiveError(SettlementError):
    """Raised when a wallet cancels again inside the cooldown window."""

    kind = "cooldown_active"
    status_code = 429

    def __init__(self, wallet_address: str, retry_after: int) -> None:
        self.wallet_address = wallet_address
        self.retry_after = retry_after
        super().__init__(f"Cooldown active. Retry in {retry_after} seconds.")


class SettlementFailedError(SettlementError):
    """Raised when a gateway failure aborted the enclosing transaction."""

    kind = "settlement_failed"
    status_code = 503


class TransactionAbortedError(SettlementError):
    """Raised when the store could not commit a transaction."""

    kind = "transaction_aborted"
    status_code = 409


__all__ = [
    "CooldownActiveError",
    "DepositUnverifiedError",
    "GatewayUnavailableError",
    "InvalidAmountError",
    "InvalidMoveError",
    "InvalidRequestError",
    "InvalidUsernameError",
    "RoomUnavailableError",
    "SettlementError",
    "SettlementFailedError",
    "TransactionAbortedError",
]
