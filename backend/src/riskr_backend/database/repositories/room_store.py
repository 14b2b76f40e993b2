"""SQL implementation of the settlement room store."""

from __future__ import annotations

import logging
from collections.abc import Iterator  # noqa: TC003
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from riskr_backend.database.schemas import DepositSchema, RoomSchema, WalletSchema
from riskr_backend.database.service import DatabaseService
from riskr_backend.settlement.errors import RoomUnavailableError, TransactionAbortedError
from riskr_backend.settlement.persistence import RoomRecord, RoomTransaction, WalletRecord
from riskr_backend.shared import RoomStatus

logger = logging.getLogger(__name__)

_ROOM_FIELDS = (
    "host_address",
    "host_move",
    "bet_amount",
    "status",
    "joiner_address",
    "joiner_move",
    "winner",
    "created_at",
    "settled_at",
    "cancelled_at",
)


def _aware(value: datetime | None) -> datetime | None:
    """Attach UTC to timestamps read back from drivers that drop the offset."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _to_room_record(row: RoomSchema) -> RoomRecord:
    return RoomRecord(
        id=row.id,
        host_address=row.host_address,
        host_move=row.host_move,
        bet_amount=row.bet_amount,
        status=row.status,
        joiner_address=row.joiner_address,
        joiner_move=row.joiner_move,
        winner=row.winner,
        created_at=_aware(row.created_at),
        settled_at=_aware(row.settled_at),
        cancelled_at=_aware(row.cancelled_at),
    )


def _to_wallet_record(row: WalletSchema) -> WalletRecord:
    return WalletRecord(
        address=row.address,
        username=row.username,
        last_cancel_at=_aware(row.last_cancel_at),
    )


class SqlRoomTransaction:
    """Room transaction over a single SQLAlchemy session.

    Reads take row locks where the database supports them. Writes are
    compare-and-swap against what the transaction read, so databases that
    ignore ``FOR UPDATE`` (SQLite) still let only one of two racing
    transactions move a room out of WAITING or stamp a wallet's cancel time.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._wallet_reads: dict[str, datetime | None] = {}

    def get_room(self, room_id: str) -> RoomRecord | None:
        stmt = (
            select(RoomSchema)
            .where(RoomSchema.id == room_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = self._session.scalar(stmt)
        return None if row is None else _to_room_record(row)

    def insert_room(self, room: RoomRecord) -> None:
        row = RoomSchema(id=room.id, **{name: getattr(room, name) for name in _ROOM_FIELDS})
        self._session.add(row)
        self._session.flush()

    def update_room(self, room: RoomRecord) -> None:
        # Rooms only ever leave WAITING, and only once.
        stmt = (
            update(RoomSchema)
            .where(RoomSchema.id == room.id, RoomSchema.status == RoomStatus.WAITING)
            .values({name: getattr(room, name) for name in _ROOM_FIELDS})
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        if result.rowcount != 1:
            logger.warning(f"Room {room.id} left WAITING in a concurrent transaction")
            raise RoomUnavailableError(room.id)

    def get_wallet(self, address: str) -> WalletRecord | None:
        stmt = (
            select(WalletSchema)
            .where(WalletSchema.address == address)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = self._session.scalar(stmt)
        if row is None:
            return None
        wallet = _to_wallet_record(row)
        self._wallet_reads[address] = wallet.last_cancel_at
        return wallet

    def save_wallet(self, wallet: WalletRecord) -> None:
        values = {"username": wallet.username, "last_cancel_at": wallet.last_cancel_at}
        if (
            wallet.address not in self._wallet_reads
            and self.get_wallet(wallet.address) is None
        ):
            self._session.add(WalletSchema(address=wallet.address, **values))
            try:
                self._session.flush()
            except IntegrityError as exc:
                msg = f"Wallet {wallet.address} was created concurrently."
                raise TransactionAbortedError(msg) from exc
            return

        seen = self._wallet_reads[wallet.address]
        unchanged = (
            WalletSchema.last_cancel_at.is_(None)
            if seen is None
            else WalletSchema.last_cancel_at == seen
        )
        stmt = (
            update(WalletSchema)
            .where(WalletSchema.address == wallet.address, unchanged)
            .values(values)
            .execution_options(synchronize_session=False)
        )
        if self._session.execute(stmt).rowcount != 1:
            msg = f"Wallet {wallet.address} changed in a concurrent transaction."
            raise TransactionAbortedError(msg)
        self._wallet_reads[wallet.address] = wallet.last_cancel_at

    def claim_deposit(self, proof: str, wallet_address: str, amount: int) -> bool:
        if self._session.get(DepositSchema, proof) is not None:
            return False
        self._session.add(
            DepositSchema(proof=proof, wallet_address=wallet_address, amount=amount)
        )
        try:
            self._session.flush()
        except IntegrityError:
            # A concurrent transaction committed the same proof first.
            logger.warning(f"Deposit {proof} claimed concurrently")
            return False
        return True


class SqlRoomStore:
    """Room store backed by the relational database."""

    def __init__(self, database: DatabaseService) -> None:
        self._database = database

    @contextmanager
    def transaction(self) -> Iterator[RoomTransaction]:
        with self._database.session() as session:
            yield SqlRoomTransaction(session)

    def get_room(self, room_id: str) -> RoomRecord | None:
        with self._database.session() as session:
            row = session.get(RoomSchema, room_id)
            return None if row is None else _to_room_record(row)

    def list_waiting_rooms(self, limit: int) -> tuple[RoomRecord, ...]:
        stmt = (
            select(RoomSchema)
            .where(RoomSchema.status == RoomStatus.WAITING)
            .order_by(RoomSchema.created_at.desc())
            .limit(limit)
        )
        with self._database.session() as session:
            return tuple(_to_room_record(row) for row in session.scalars(stmt))

    def list_finished_rooms(self, host_address: str, limit: int) -> tuple[RoomRecord, ...]:
        stmt = (
            select(RoomSchema)
            .where(
                RoomSchema.host_address == host_address,
                RoomSchema.status == RoomStatus.FINISHED,
            )
            .order_by(RoomSchema.settled_at.desc())
            .limit(limit)
        )
        with self._database.session() as session:
            return tuple(_to_room_record(row) for row in session.scalars(stmt))

    def get_wallet(self, address: str) -> WalletRecord | None:
        with self._database.session() as session:
            row = session.get(WalletSchema, address)
            return None if row is None else _to_wallet_record(row)

    def ensure_wallet(self, address: str) -> WalletRecord:
        wallet = self.get_wallet(address)
        if wallet is not None:
            return wallet
        try:
            with self._database.session() as session:
                session.add(WalletSchema(address=address))
        except IntegrityError:
            logger.debug(f"Wallet {address} created concurrently")
        else:
            logger.info(f"Created user record for wallet {address}")
        return self.get_wallet(address) or WalletRecord(address=address)


__all__ = ["SqlRoomStore", "SqlRoomTransaction"]
