"""Room store abstractions and the in-memory document store.

The settlement engine only ever mutates rooms and wallets through
:meth:`RoomStore.transaction`. A transaction must behave like a serializable
per-document transaction of a document database: a document read inside the
transaction stays locked until the transaction ends, staged writes become
visible on commit only, and any exception discards them. The SQL adapter in
:mod:`riskr_backend.database` provides the same contract with row locks.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator  # noqa: TC003
from contextlib import AbstractContextManager, contextmanager
from datetime import datetime
from typing import Protocol

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from riskr_backend.settlement.errors import RoomUnavailableError, TransactionAbortedError
from riskr_backend.shared import Move, RoomStatus

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT_SECONDS = 30.0


class RoomRecord(BaseModel):
    """Stored state of a single wager room."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    host_address: str = Field(..., min_length=1)
    host_move: Move
    bet_amount: int = Field(..., gt=0)
    status: RoomStatus = RoomStatus.WAITING
    joiner_address: str | None = None
    joiner_move: Move | None = None
    winner: str | None = None
    created_at: datetime
    settled_at: datetime | None = None
    cancelled_at: datetime | None = None

    @property
    def is_waiting(self) -> bool:
        return self.status is RoomStatus.WAITING

    def finish(
        self,
        *,
        joiner_address: str,
        joiner_move: Move,
        winner: str,
        settled_at: datetime,
    ) -> RoomRecord:
        """Return the room settled against *joiner_address*."""
        if not self.is_waiting:
            raise RoomUnavailableError(self.id)
        return self.model_copy(
            update={
                "status": RoomStatus.FINISHED,
                "joiner_address": joiner_address,
                "joiner_move": joiner_move,
                "winner": winner,
                "settled_at": settled_at,
            }
        )

    def cancel(self, *, cancelled_at: datetime) -> RoomRecord:
        """Return the room in its terminal cancelled state."""
        if not self.is_waiting:
            raise RoomUnavailableError(self.id)
        return self.model_copy(
            update={"status": RoomStatus.CANCELLED, "cancelled_at": cancelled_at}
        )


class WalletRecord(BaseModel):
    """Per-wallet user document."""

    model_config = ConfigDict(frozen=True)

    address: str = Field(..., min_length=1)
    username: str | None = None
    last_cancel_at: datetime | None = None


class RoomTransaction(Protocol):
    """Operations available inside a single atomic store transaction."""

    def get_room(self, room_id: str) -> RoomRecord | None:
        """Return and lock the room, or ``None`` when it does not exist."""

    def insert_room(self, room: RoomRecord) -> None:
        """Stage the creation of *room*."""

    def update_room(self, room: RoomRecord) -> None:
        """Stage the replacement of an existing room document."""

    def get_wallet(self, address: str) -> WalletRecord | None:
        """Return and lock the wallet document, or ``None``."""

    def save_wallet(self, wallet: WalletRecord) -> None:
        """Stage an upsert of *wallet*."""

    def claim_deposit(self, proof: str, wallet_address: str, amount: int) -> bool:
        """Reserve *proof* for one room; ``False`` when it was already used."""


class RoomStore(Protocol):
    """Transactional document store holding rooms and wallets."""

    def transaction(self) -> AbstractContextManager[RoomTransaction]:
        """Open an atomic read-modify-write scope."""

    def get_room(self, room_id: str) -> RoomRecord | None:
        """Return the committed room without locking it."""

    def list_waiting_rooms(self, limit: int) -> tuple[RoomRecord, ...]:
        """Return WAITING rooms, newest first."""

    def list_finished_rooms(self, host_address: str, limit: int) -> tuple[RoomRecord, ...]:
        """Return FINISHED rooms hosted by *host_address*, newest first."""

    def get_wallet(self, address: str) -> WalletRecord | None:
        """Return the committed wallet document."""

    def ensure_wallet(self, address: str) -> WalletRecord:
        """Return the wallet document, creating an empty one if missing."""


class _InMemoryTransaction:
    """Transaction over :class:`InMemoryRoomStore` with per-document locks."""

    def __init__(self, store: InMemoryRoomStore) -> None:
        self._store = store
        self._held: dict[str, _DocumentLock] = {}
        self._writes: dict[str, BaseModel] = {}

    def _lock(self, key: str) -> None:
        if key in self._held:
            return
        entry = self._store._checkout_lock(key)
        if not entry.lock.acquire(timeout=self._store.lock_timeout):
            self._store._checkin_lock(key, entry)
            msg = f"Timed out waiting for document {key}."
            raise TransactionAbortedError(msg)
        self._held[key] = entry

    def _read(self, key: str) -> BaseModel | None:
        self._lock(key)
        if key in self._writes:
            return self._writes[key]
        return self._store._documents.get(key)

    def get_room(self, room_id: str) -> RoomRecord | None:
        return self._read(_room_key(room_id))  # type: ignore[return-value]

    def insert_room(self, room: RoomRecord) -> None:
        if self._read(_room_key(room.id)) is not None:
            msg = f"Room {room.id} already exists."
            raise TransactionAbortedError(msg)
        self._writes[_room_key(room.id)] = room

    def update_room(self, room: RoomRecord) -> None:
        if self._read(_room_key(room.id)) is None:
            raise RoomUnavailableError(room.id)
        self._writes[_room_key(room.id)] = room

    def get_wallet(self, address: str) -> WalletRecord | None:
        return self._read(_wallet_key(address))  # type: ignore[return-value]

    def save_wallet(self, wallet: WalletRecord) -> None:
        self._lock(_wallet_key(wallet.address))
        self._writes[_wallet_key(wallet.address)] = wallet

    def claim_deposit(self, proof: str, wallet_address: str, amount: int) -> bool:
        key = _deposit_key(proof)
        if self._read(key) is not None:
            return False
        self._writes[key] = _DepositClaim(
            proof=proof, wallet_address=wallet_address, amount=amount
        )
        return True

    def commit(self) -> None:
        with self._store._data_lock:
            self._store._documents.update(self._writes)
        self._writes.clear()

    def release(self) -> None:
        self._writes.clear()
        for key, entry in self._held.items():
            entry.lock.release()
            self._store._checkin_lock(key, entry)
        self._held.clear()


class _DocumentLock:
    """Lock for one document plus the number of transactions holding or awaiting it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class _DepositClaim(BaseModel):
    model_config = ConfigDict(frozen=True)

    proof: str
    wallet_address: str
    amount: int


def _room_key(room_id: str) -> str:
    return f"games/{room_id}"


def _wallet_key(address: str) -> str:
    return f"users/{address}"


def _deposit_key(proof: str) -> str:
    return f"deposits/{proof}"


class InMemoryRoomStore:
    """Thread-safe in-memory implementation of :class:`RoomStore`."""

    def __init__(self, *, lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS) -> None:
        self.lock_timeout = lock_timeout
        self._documents: dict[str, BaseModel] = {}
        self._data_lock = threading.Lock()
        self._locks: dict[str, _DocumentLock] = {}
        self._locks_guard = threading.Lock()

    def _checkout_lock(self, key: str) -> _DocumentLock:
        with self._locks_guard:
            entry = self._locks.setdefault(key, _DocumentLock())
            entry.users += 1
            return entry

    def _checkin_lock(self, key: str, entry: _DocumentLock) -> None:
        # The entry is dropped once nobody holds or awaits it.
        with self._locks_guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    @contextmanager
    def transaction(self) -> Iterator[RoomTransaction]:
        """Provide an atomic scope; writes are applied only if the body succeeds."""
        txn = _InMemoryTransaction(self)
        try:
            yield txn
            txn.commit()
        except Exception:
            logger.debug("Rolling back in-memory transaction", exc_info=True)
            raise
        finally:
            txn.release()

    def _documents_with_prefix(self, prefix: str) -> list[BaseModel]:
        with self._data_lock:
            return [doc for key, doc in self._documents.items() if key.startswith(prefix)]

    def get_room(self, room_id: str) -> RoomRecord | None:
        with self._data_lock:
            return self._documents.get(_room_key(room_id))  # type: ignore[return-value]

    def list_waiting_rooms(self, limit: int) -> tuple[RoomRecord, ...]:
        rooms = [
            room
            for room in self._documents_with_prefix("games/")
            if isinstance(room, RoomRecord) and room.is_waiting
        ]
        rooms.sort(key=lambda room: room.created_at, reverse=True)
        return tuple(rooms[:limit])

    def list_finished_rooms(self, host_address: str, limit: int) -> tuple[RoomRecord, ...]:
        rooms = [
            room
            for room in self._documents_with_prefix("games/")
            if isinstance(room, RoomRecord)
            and room.status is RoomStatus.FINISHED
            and room.host_address == host_address
        ]
        rooms.sort(key=lambda room: room.settled_at or room.created_at, reverse=True)
        return tuple(rooms[:limit])

    def get_wallet(self, address: str) -> WalletRecord | None:
        with self._data_lock:
            return self._documents.get(_wallet_key(address))  # type: ignore[return-value]

    def ensure_wallet(self, address: str) -> WalletRecord:
        with self._data_lock:
            wallet = self._documents.setdefault(
                _wallet_key(address), WalletRecord(address=address)
            )
        return wallet  # type: ignore[return-value]


__all__ = [
    "InMemoryRoomStore",
    "RoomRecord",
    "RoomStore",
    "RoomTransaction",
    "WalletRecord",
]
