"""Settlement engine for rock-paper-scissors wager rooms."""

from riskr_backend.settlement.abuse_gate import DEFAULT_CANCEL_COOLDOWN, AbuseGate
from riskr_backend.settlement.engine import (
    DEFAULT_BET_AMOUNT,
    DEFAULT_FEE_RATE,
    CancelResult,
    JoinResult,
    SettlementEngine,
)
from riskr_backend.settlement.errors import (
    CooldownActiveError,
    DepositUnverifiedError,
    GatewayUnavailableError,
    InvalidAmountError,
    InvalidMoveError,
    InvalidRequestError,
    InvalidUsernameError,
    RoomUnavailableError,
    SettlementError,
    SettlementFailedError,
    TransactionAbortedError,
)
from riskr_backend.settlement.gateway import (
    DepositPayoutGateway,
    HttpLedgerGateway,
    InMemoryGateway,
)
from riskr_backend.settlement.payouts import compute_payouts, platform_fee
from riskr_backend.settlement.persistence import (
    InMemoryRoomStore,
    RoomRecord,
    RoomStore,
    RoomTransaction,
    WalletRecord,
)
from riskr_backend.settlement.resolver import parse_move, resolve, winning_move

__all__ = [
    "DEFAULT_BET_AMOUNT",
    "DEFAULT_CANCEL_COOLDOWN",
    "DEFAULT_FEE_RATE",
    "AbuseGate",
    "CancelResult",
    "CooldownActiveError",
    "DepositPayoutGateway",
    "DepositUnverifiedError",
    "GatewayUnavailableError",
    "HttpLedgerGateway",
    "InMemoryGateway",
    "InMemoryRoomStore",
    "InvalidAmountError",
    "InvalidMoveError",
    "InvalidRequestError",
    "InvalidUsernameError",
    "JoinResult",
    "RoomRecord",
    "RoomStore",
    "RoomTransaction",
    "RoomUnavailableError",
    "SettlementEngine",
    "SettlementError",
    "SettlementFailedError",
    "TransactionAbortedError",
    "WalletRecord",
    "compute_payouts",
    "parse_move",
    "platform_fee",
    "resolve",
    "winning_move",
]
