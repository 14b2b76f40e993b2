"""Tests for the room lifecycle and settlement rules."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from riskr_backend.settlement import (
    CooldownActiveError,
    DepositUnverifiedError,
    GatewayUnavailableError,
    InMemoryGateway,
    InMemoryRoomStore,
    InvalidAmountError,
    InvalidMoveError,
    InvalidRequestError,
    RoomRecord,
    RoomUnavailableError,
    SettlementEngine,
    SettlementFailedError,
    WalletRecord,
)
from riskr_backend.shared import DRAW, Move, Payout, PayoutReceipt, RoomStatus

if TYPE_CHECKING:
    from conftest import FakeClock

HOST = "host-wallet"
JOINER = "joiner-wallet"
OTHER = "other-wallet"


class FailingPayoutGateway(InMemoryGateway):
    """Verifies deposits but fails every payout."""

    def send_payout(
        self, wallet_address: str, amount: int, *, idempotency_key: str
    ) -> PayoutReceipt:
        msg = "ledger timeout"
        raise GatewayUnavailableError(msg)


class FailSecondPayoutOnceGateway(InMemoryGateway):
    """Fails only the second payout instruction it ever receives."""

    def __init__(self) -> None:
        super().__init__()
        self.payout_calls = 0

    def send_payout(
        self, wallet_address: str, amount: int, *, idempotency_key: str
    ) -> PayoutReceipt:
        self.payout_calls += 1
        if self.payout_calls == 2:
            msg = "ledger timeout"
            raise GatewayUnavailableError(msg)
        return super().send_payout(
            wallet_address, amount, idempotency_key=idempotency_key
        )


class StaleReadStore(InMemoryRoomStore):
    """Store whose non-transactional wallet reads always miss."""

    def get_wallet(self, address: str) -> WalletRecord | None:
        return None


def open_room(
    engine: SettlementEngine,
    move: Move = Move.ROCK,
    amount: int | None = 50,
    proof: str = "tx-host",
) -> RoomRecord:
    return engine.create_room(HOST, move, amount, proof)


def test_create_room_persists_waiting_room(
    engine: SettlementEngine, store: InMemoryRoomStore, gateway: InMemoryGateway, clock: FakeClock
) -> None:
    room = engine.create_room(HOST, "rock", 50, "tx-1")

    assert room.status is RoomStatus.WAITING
    assert room.host_move is Move.ROCK
    assert room.created_at == clock.now
    assert store.get_room(room.id) == room
    assert gateway.verifications == [(HOST, 50, "tx-1")]
    assert store.get_wallet(HOST) == WalletRecord(address=HOST)


def test_create_room_defaults_bet_amount(engine: SettlementEngine) -> None:
    room = open_room(engine, amount=None)

    assert room.bet_amount == 50


def test_create_room_rejects_unverified_deposit(
    store: InMemoryRoomStore, clock: FakeClock
) -> None:
    gateway = InMemoryGateway(verifier=lambda wallet, amount, proof: False)
    engine = SettlementEngine(store, gateway, clock=clock)

    with pytest.raises(DepositUnverifiedError):
        open_room(engine)

    assert store.list_waiting_rooms(10) == ()


@pytest.mark.parametrize(
    ("move", "amount", "proof", "error"),
    [
        ("LIZARD", 50, "tx", InvalidMoveError),
        (Move.ROCK, 0, "tx", InvalidAmountError),
        (Move.ROCK, -10, "tx", InvalidAmountError),
        (Move.ROCK, 50, "  ", DepositUnverifiedError),
    ],
)
def test_create_room_validates_input_before_gateway(
    engine: SettlementEngine,
    gateway: InMemoryGateway,
    move: str,
    amount: int,
    proof: str,
    error: type[Exception],
) -> None:
    with pytest.raises(error):
        engine.create_room(HOST, move, amount, proof)

    assert gateway.verifications == []


def test_create_room_requires_host_address(engine: SettlementEngine) -> None:
    with pytest.raises(InvalidRequestError):
        engine.create_room(" ", Move.ROCK, 50, "tx")


def test_create_room_surfaces_gateway_outage(
    engine: SettlementEngine, store: InMemoryRoomStore, gateway: InMemoryGateway
) -> None:
    gateway.available = False

    with pytest.raises(GatewayUnavailableError):
        open_room(engine)

    assert store.list_waiting_rooms(10) == ()


def test_deposit_proof_backs_only_one_room(
    engine: SettlementEngine, store: InMemoryRoomStore
) -> None:
    room = open_room(engine, proof="tx-1")

    with pytest.raises(DepositUnverifiedError):
        open_room(engine, proof="tx-1")
    with pytest.raises(DepositUnverifiedError):
        engine.join_room(room.id, JOINER, Move.PAPER, "tx-1")

    assert store.get_room(room.id).status is RoomStatus.WAITING
    assert len(store.list_waiting_rooms(10)) == 1


def test_host_wins_pot_minus_fee(
    engine: SettlementEngine,
    store: InMemoryRoomStore,
    gateway: InMemoryGateway,
    clock: FakeClock,
) -> None:
    room = open_room(engine, Move.ROCK)
    clock.advance(30)

    result = engine.join_room(room.id, JOINER, Move.SCISSORS, "tx-joiner")

    assert result.winner == HOST
    assert result.host_move is Move.ROCK
    assert result.joiner_move is Move.SCISSORS
    assert result.payouts == (Payout(recipient=HOST, amount=90),)
    assert result.fee == 10
    assert [(r.recipient, r.amount) for r in gateway.receipts] == [(HOST, 90)]

    stored = store.get_room(room.id)
    assert stored == result.room
    assert stored.status is RoomStatus.FINISHED
    assert stored.joiner_address == JOINER
    assert stored.joiner_move is Move.SCISSORS
    assert stored.winner == HOST
    assert stored.settled_at == clock.now


def test_joiner_wins(engine: SettlementEngine) -> None:
    room = open_room(engine, Move.PAPER)

    result = engine.join_room(room.id, JOINER, "scissors", "tx-joiner")

    assert result.winner == JOINER
    assert result.payouts == (Payout(recipient=JOINER, amount=90),)


def test_draw_refunds_both_players(
    engine: SettlementEngine, gateway: InMemoryGateway
) -> None:
    room = open_room(engine, Move.PAPER)

    result = engine.join_room(room.id, JOINER, Move.PAPER, "tx-joiner")

    assert result.winner == DRAW
    assert result.fee == 0
    assert result.payouts == (
        Payout(recipient=HOST, amount=50),
        Payout(recipient=JOINER, amount=50),
    )
    assert sorted((r.recipient, r.amount) for r in gateway.receipts) == [
        (HOST, 50),
        (JOINER, 50),
    ]


def test_join_on_finished_room_changes_nothing(
    engine: SettlementEngine, store: InMemoryRoomStore, gateway: InMemoryGateway
) -> None:
    room = open_room(engine)
    first = engine.join_room(room.id, JOINER, Move.PAPER, "tx-joiner")
    verifications = list(gateway.verifications)
    receipts = gateway.receipts

    with pytest.raises(RoomUnavailableError):
        engine.join_room(room.id, OTHER, Move.SCISSORS, "tx-other")

    assert store.get_room(room.id) == first.room
    assert gateway.verifications == verifications
    assert gateway.receipts == receipts


def test_join_unknown_room(engine: SettlementEngine, gateway: InMemoryGateway) -> None:
    with pytest.raises(RoomUnavailableError):
        engine.join_room("missing", JOINER, Move.ROCK, "tx")

    assert gateway.verifications == []


def test_host_cannot_join_own_room(
    engine: SettlementEngine, store: InMemoryRoomStore
) -> None:
    room = open_room(engine)

    with pytest.raises(RoomUnavailableError, match="own game"):
        engine.join_room(room.id, HOST, Move.PAPER, "tx-self")

    assert store.get_room(room.id).is_waiting


def test_invalid_join_move_is_rejected_before_loading_room(
    engine: SettlementEngine, gateway: InMemoryGateway
) -> None:
    room = open_room(engine)
    before = list(gateway.verifications)

    with pytest.raises(InvalidMoveError):
        engine.join_room(room.id, JOINER, "SPOCK", "tx-joiner")

    assert gateway.verifications == before


def test_join_deposit_mismatch_leaves_room_waiting(
    store: InMemoryRoomStore, clock: FakeClock
) -> None:
    gateway = InMemoryGateway(verifier=lambda wallet, amount, proof: wallet == HOST)
    engine = SettlementEngine(store, gateway, clock=clock)
    room = open_room(engine)

    with pytest.raises(DepositUnverifiedError):
        engine.join_room(room.id, JOINER, Move.PAPER, "tx-joiner")

    assert store.get_room(room.id).is_waiting
    assert gateway.receipts == ()


def test_verification_outage_aborts_join(
    engine: SettlementEngine, store: InMemoryRoomStore, gateway: InMemoryGateway
) -> None:
    room = open_room(engine)
    gateway.fail_next()

    with pytest.raises(SettlementFailedError):
        engine.join_room(room.id, JOINER, Move.PAPER, "tx-joiner")

    assert store.get_room(room.id).is_waiting
    result = engine.join_room(room.id, JOINER, Move.PAPER, "tx-joiner")
    assert result.winner == JOINER


def test_payout_failure_rolls_back_and_retry_succeeds(
    store: InMemoryRoomStore, clock: FakeClock
) -> None:
    engine = SettlementEngine(store, FailingPayoutGateway(clock=clock), clock=clock)
    room = open_room(engine)

    with pytest.raises(SettlementFailedError):
        engine.join_room(room.id, JOINER, Move.PAPER, "tx-joiner")

    stored = store.get_room(room.id)
    assert stored.is_waiting
    assert stored.joiner_address is None

    healthy = SettlementEngine(store, InMemoryGateway(clock=clock), clock=clock)
    result = healthy.join_room(room.id, JOINER, Move.PAPER, "tx-joiner")
    assert result.room.status is RoomStatus.FINISHED


def test_retry_after_partial_draw_payout_does_not_double_pay(
    store: InMemoryRoomStore, clock: FakeClock
) -> None:
    gateway = FailSecondPayoutOnceGateway()
    engine = SettlementEngine(store, gateway, clock=clock)
    room = open_room(engine, Move.ROCK)

    with pytest.raises(SettlementFailedError):
        engine.join_room(room.id, JOINER, Move.ROCK, "tx-joiner")
    assert store.get_room(room.id).is_waiting

    result = engine.join_room(room.id, JOINER, Move.ROCK, "tx-joiner")

    assert result.winner == DRAW
    assert gateway.payout_calls == 4
    assert sorted((r.recipient, r.amount) for r in gateway.receipts) == [
        (HOST, 50),
        (JOINER, 50),
    ]


def test_cancel_refunds_host_and_closes_room(
    engine: SettlementEngine,
    store: InMemoryRoomStore,
    gateway: InMemoryGateway,
    clock: FakeClock,
) -> None:
    room = open_room(engine, amount=100)

    result = engine.cancel_room(room.id, HOST)

    assert result.room.status is RoomStatus.CANCELLED
    assert result.room.cancelled_at == clock.now
    assert result.refund.recipient == HOST
    assert result.refund.amount == 100
    assert result.refund.idempotency_key == f"{room.id}:refund:{HOST}"
    assert store.get_room(room.id).status is RoomStatus.CANCELLED
    assert store.get_wallet(HOST).last_cancel_at == clock.now
    assert store.list_waiting_rooms(10) == ()
    assert len(gateway.receipts) == 1


def test_only_host_can_cancel(
    engine: SettlementEngine, store: InMemoryRoomStore, gateway: InMemoryGateway
) -> None:
    room = open_room(engine)

    with pytest.raises(RoomUnavailableError, match="Only the host"):
        engine.cancel_room(room.id, OTHER)

    assert store.get_room(room.id).is_waiting
    assert gateway.receipts == ()
    assert store.get_wallet(OTHER).last_cancel_at is None


def test_cancel_finished_room_is_unavailable(engine: SettlementEngine) -> None:
    room = open_room(engine)
    engine.join_room(room.id, JOINER, Move.PAPER, "tx-joiner")

    with pytest.raises(RoomUnavailableError):
        engine.cancel_room(room.id, HOST)


def test_join_cancelled_room_is_unavailable(engine: SettlementEngine) -> None:
    room = open_room(engine)
    engine.cancel_room(room.id, HOST)

    with pytest.raises(RoomUnavailableError):
        engine.join_room(room.id, JOINER, Move.PAPER, "tx-joiner")


def test_second_cancel_never_refunds_twice(
    engine: SettlementEngine, gateway: InMemoryGateway
) -> None:
    room = open_room(engine)
    engine.cancel_room(room.id, HOST)

    with pytest.raises((CooldownActiveError, RoomUnavailableError)):
        engine.cancel_room(room.id, HOST)

    assert len(gateway.receipts) == 1


def test_cooldown_blocks_cancelling_another_room(
    engine: SettlementEngine, store: InMemoryRoomStore, clock: FakeClock
) -> None:
    first = open_room(engine, proof="tx-1")
    second = open_room(engine, proof="tx-2")
    engine.cancel_room(first.id, HOST)
    clock.advance(120)

    with pytest.raises(CooldownActiveError) as exc_info:
        engine.cancel_room(second.id, HOST)

    assert exc_info.value.retry_after == 180
    assert not engine.allow_cancel(HOST)
    assert store.get_room(second.id).is_waiting

    clock.advance(180)
    assert engine.allow_cancel(HOST)
    assert engine.cancel_room(second.id, HOST).room.status is RoomStatus.CANCELLED


def test_cooldown_is_rechecked_inside_transaction(clock: FakeClock) -> None:
    store = StaleReadStore()
    gateway = InMemoryGateway(clock=clock)
    engine = SettlementEngine(
        store, gateway, cooldown=timedelta(seconds=300), clock=clock
    )
    first = open_room(engine, proof="tx-1")
    second = open_room(engine, proof="tx-2")
    engine.cancel_room(first.id, HOST)
    clock.advance(10)

    with pytest.raises(CooldownActiveError):
        engine.cancel_room(second.id, HOST)

    assert store.get_room(second.id).is_waiting
    assert len(gateway.receipts) == 1


def test_refund_failure_keeps_room_and_cooldown_untouched(
    store: InMemoryRoomStore, clock: FakeClock
) -> None:
    engine = SettlementEngine(store, FailingPayoutGateway(clock=clock), clock=clock)
    room = open_room(engine)

    with pytest.raises(SettlementFailedError):
        engine.cancel_room(room.id, HOST)

    assert store.get_room(room.id).is_waiting
    assert store.get_wallet(HOST).last_cancel_at is None


def test_waiting_rooms_are_listed_newest_first(
    engine: SettlementEngine, clock: FakeClock
) -> None:
    rooms = []
    for index in range(4):
        rooms.append(open_room(engine, proof=f"tx-{index}"))
        clock.advance(1)
    engine.join_room(rooms[1].id, JOINER, Move.PAPER, "tx-joiner")

    listed = engine.list_waiting_rooms()

    assert [room.id for room in listed] == [rooms[3].id, rooms[2].id, rooms[0].id]
    assert [room.id for room in engine.list_waiting_rooms(limit=1)] == [rooms[3].id]


def test_get_room_unknown(engine: SettlementEngine) -> None:
    with pytest.raises(RoomUnavailableError, match="not found"):
        engine.get_room("missing")


def test_misconfigured_fee_rate_fails_fast(
    store: InMemoryRoomStore, gateway: InMemoryGateway
) -> None:
    with pytest.raises(InvalidAmountError):
        SettlementEngine(store, gateway, fee_rate=1.0)
