"""Room lifecycle state machine and settlement.

A room moves ``WAITING -> FINISHED`` through :meth:`SettlementEngine.join_room`
or ``WAITING -> CANCELLED`` through :meth:`SettlementEngine.cancel_room`,
exactly once. Each transition re-reads the room inside a single store
transaction and checks its status there, so two requests racing for the same
room serialize on the store and only the first one finds it ``WAITING``.

Gateway calls happen inside that transaction after every other write has been
staged. A gateway failure raises out of the transaction, which discards the
staged writes, so the room stays ``WAITING`` and the caller may retry. The
engine keeps no state between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from riskr_backend.settlement.abuse_gate import DEFAULT_CANCEL_COOLDOWN, AbuseGate
from riskr_backend.settlement.errors import (
    DepositUnverifiedError,
    GatewayUnavailableError,
    InvalidAmountError,
    InvalidRequestError,
    RoomUnavailableError,
    SettlementFailedError,
)
from riskr_backend.settlement.gateway import DepositPayoutGateway  # noqa: TC001
from riskr_backend.settlement.payouts import compute_payouts, platform_fee
from riskr_backend.settlement.persistence import (
    RoomRecord,
    RoomStore,
    RoomTransaction,
    WalletRecord,
)
from riskr_backend.settlement.resolver import parse_move, resolve
from riskr_backend.shared import DRAW, Move, Payout, PayoutReceipt

logger = logging.getLogger(__name__)

DEFAULT_FEE_RATE = Decimal("0.10")
DEFAULT_BET_AMOUNT = 50


@dataclass(slots=True, frozen=True)
class JoinResult:
    """Outcome of a successful join."""

    room: RoomRecord
    winner: str
    host_move: Move
    joiner_move: Move
    payouts: tuple[Payout, ...]
    receipts: tuple[PayoutReceipt, ...]
    fee: int


@dataclass(slots=True, frozen=True)
class CancelResult:
    """Outcome of a successful cancellation."""

    room: RoomRecord
    refund: PayoutReceipt


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _require_address(value: str, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        msg = f"{field} is required"
        raise InvalidRequestError(msg)
    return value.strip()


def _require_proof(proof: str) -> str:
    if not isinstance(proof, str) or not proof.strip():
        msg = "Deposit proof is required"
        raise DepositUnverifiedError(msg)
    return proof.strip()


class SettlementEngine:
    """Create, join and cancel wager rooms against a transactional store."""

    def __init__(
        self,
        store: RoomStore,
        gateway: DepositPayoutGateway,
        *,
        fee_rate: Decimal | float = DEFAULT_FEE_RATE,
        cooldown: timedelta = DEFAULT_CANCEL_COOLDOWN,
        default_bet_amount: int = DEFAULT_BET_AMOUNT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._fee_rate = Decimal(str(fee_rate))
        self._abuse_gate = AbuseGate(cooldown)
        self._default_bet_amount = default_bet_amount
        self._clock = clock
        # Fails fast on a misconfigured fee rate.
        platform_fee(default_bet_amount, self._fee_rate)

    @property
    def fee_rate(self) -> Decimal:
        return self._fee_rate

    def create_room(
        self,
        host_address: str,
        move: Move | str,
        bet_amount: int | None,
        deposit_proof: str,
    ) -> RoomRecord:
        """Open a WAITING room once the host's deposit is confirmed."""
        host_address = _require_address(host_address, "hostAddress")
        host_move = parse_move(move)
        amount = self._default_bet_amount if bet_amount is None else bet_amount
        self._validate_amount(amount)
        proof = _require_proof(deposit_proof)

        self._store.ensure_wallet(host_address)
        self._verify_deposit(host_address, amount, proof, in_transaction=False)

        room = RoomRecord(
            id=uuid4().hex,
            host_address=host_address,
            host_move=host_move,
            bet_amount=amount,
            created_at=self._clock(),
        )
        with self._store.transaction() as txn:
            self._claim_deposit(txn, proof, host_address, amount)
            txn.insert_room(room)

        logger.info(f"Created room {room.id} by {host_address} for {amount}")
        return room

    def join_room(
        self,
        room_id: str,
        joiner_address: str,
        joiner_move: Move | str,
        deposit_proof: str,
    ) -> JoinResult:
        """Settle a WAITING room against the joiner's move and pay out."""
        joiner_address = _require_address(joiner_address, "joinerAddress")
        move = parse_move(joiner_move)
        proof = _require_proof(deposit_proof)

        with self._store.transaction() as txn:
            room = self._load_waiting_room(txn, room_id)
            if room.host_address == joiner_address:
                raise RoomUnavailableError(room_id, "Cannot join your own game")

            self._claim_deposit(txn, proof, joiner_address, room.bet_amount)
            self._verify_deposit(
                joiner_address, room.bet_amount, proof, in_transaction=True
            )

            winner = resolve(room.host_move, move, room.host_address, joiner_address)
            payouts = compute_payouts(
                room.bet_amount,
                winner,
                self._fee_rate,
                host_address=room.host_address,
                joiner_address=joiner_address,
            )
            fee = 0 if winner == DRAW else platform_fee(room.bet_amount, self._fee_rate)

            settled = room.finish(
                joiner_address=joiner_address,
                joiner_move=move,
                winner=winner,
                settled_at=self._clock(),
            )
            txn.update_room(settled)
            receipts = tuple(
                self._send_payout(room.id, "settle", payout) for payout in payouts
            )

        logger.info(
            f"Settled room {room_id}: {room.host_move} vs {move}, winner {winner}, fee {fee}"
        )
        return JoinResult(
            room=settled,
            winner=winner,
            host_move=room.host_move,
            joiner_move=move,
            payouts=payouts,
            receipts=receipts,
            fee=fee,
        )

    def cancel_room(self, room_id: str, requester_address: str) -> CancelResult:
        """Refund the host and close a WAITING room, subject to the cooldown."""
        requester_address = _require_address(requester_address, "requesterAddress")
        now = self._clock()
        self._abuse_gate.ensure_allowed(
            requester_address, self._store.get_wallet(requester_address), now
        )
        self._store.ensure_wallet(requester_address)

        with self._store.transaction() as txn:
            room = self._load_waiting_room(txn, room_id)
            if room.host_address != requester_address:
                logger.warning(
                    f"Rejected cancel of room {room_id} by non-host {requester_address}"
                )
                raise RoomUnavailableError(room_id, "Only the host can cancel this game")

            wallet = txn.get_wallet(requester_address) or WalletRecord(
                address=requester_address
            )
            # Re-checked under the wallet lock: two cancels for different rooms
            # may both have passed the advisory check above.
            self._abuse_gate.ensure_allowed(requester_address, wallet, now)

            cancelled = room.cancel(cancelled_at=now)
            txn.update_room(cancelled)
            txn.save_wallet(wallet.model_copy(update={"last_cancel_at": now}))
            refund = self._send_payout(
                room.id,
                "refund",
                Payout(recipient=room.host_address, amount=room.bet_amount),
            )

        logger.info(f"Cancelled room {room_id}, refunded {room.bet_amount} to host")
        return CancelResult(room=cancelled, refund=refund)

    def allow_cancel(self, wallet_address: str, now: datetime | None = None) -> bool:
        """Advisory cooldown check for *wallet_address*."""
        return self._abuse_gate.allow_cancel(
            self._store.get_wallet(wallet_address), now or self._clock()
        )

    def get_room(self, room_id: str) -> RoomRecord:
        room = self._store.get_room(room_id)
        if room is None:
            raise RoomUnavailableError(room_id, "Game not found")
        return room

    def list_waiting_rooms(self, limit: int = 50) -> tuple[RoomRecord, ...]:
        return self._store.list_waiting_rooms(limit)

    @staticmethod
    def _validate_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            msg = f"Bet amount must be a positive integer, got {amount!r}."
            raise InvalidAmountError(msg)

    @staticmethod
    def _load_waiting_room(txn: RoomTransaction, room_id: str) -> RoomRecord:
        room = txn.get_room(room_id)
        if room is None or not room.is_waiting:
            logger.warning(f"Room {room_id} unavailable (found={room is not None})")
            raise RoomUnavailableError(room_id)
        return room

    @staticmethod
    def _claim_deposit(
        txn: RoomTransaction, proof: str, wallet_address: str, amount: int
    ) -> None:
        if not txn.claim_deposit(proof, wallet_address, amount):
            msg = f"Deposit {proof} was already used"
            raise DepositUnverifiedError(msg)

    def _verify_deposit(
        self, wallet_address: str, amount: int, proof: str, *, in_transaction: bool
    ) -> None:
        try:
            verified = self._gateway.verify_deposit(wallet_address, amount, proof)
        except GatewayUnavailableError as exc:
            if not in_transaction:
                raise
            logger.error(f"Deposit verification failed for {wallet_address}: {exc}")
            raise SettlementFailedError(str(exc)) from exc
        if not verified:
            msg = f"Deposit {proof} of {amount} from {wallet_address} not verified"
            raise DepositUnverifiedError(msg)

    def _send_payout(self, room_id: str, purpose: str, payout: Payout) -> PayoutReceipt:
        key = f"{room_id}:{purpose}:{payout.recipient}"
        try:
            return self._gateway.send_payout(
                payout.recipient, payout.amount, idempotency_key=key
            )
        except GatewayUnavailableError as exc:
            logger.error(f"Payout {key} failed, aborting settlement: {exc}", exc_info=True)
            raise SettlementFailedError(str(exc)) from exc


__all__ = [
    "DEFAULT_BET_AMOUNT",
    "DEFAULT_FEE_RATE",
    "CancelResult",
    "JoinResult",
    "SettlementEngine",
]
