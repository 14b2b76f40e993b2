"""Wallet profile logic: display names and finished-game history."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from riskr_backend.settlement import (
    InvalidRequestError,
    InvalidUsernameError,
    RoomRecord,
    RoomStore,
    WalletRecord,
)

logger = logging.getLogger(__name__)

USERNAME_MAX_LENGTH = 12
HISTORY_LIMIT = 10


def default_username(wallet_address: str) -> str:
    """Return the placeholder name shown before a wallet picks one."""
    return f"Player_{wallet_address[:4]}"


@dataclass(slots=True)
class WalletProfile:
    """Wallet document plus the data the profile screen shows."""

    wallet: WalletRecord
    username: str
    history: tuple[RoomRecord, ...]


class WalletService:
    """Reads and updates wallet documents through the room store."""

    def __init__(self, store: RoomStore) -> None:
        self._store = store

    def update_username(self, wallet_address: str, new_username: str) -> WalletRecord:
        address = wallet_address.strip()
        if not address:
            msg = "walletAddress is required"
            raise InvalidRequestError(msg)
        username = new_username.strip()
        if not username:
            msg = "Username must not be empty"
            raise InvalidUsernameError(msg)
        if len(username) > USERNAME_MAX_LENGTH:
            msg = f"Username must be at most {USERNAME_MAX_LENGTH} characters"
            raise InvalidUsernameError(msg)

        self._store.ensure_wallet(address)
        with self._store.transaction() as txn:
            wallet = txn.get_wallet(address) or WalletRecord(address=address)
            updated = wallet.model_copy(update={"username": username})
            txn.save_wallet(updated)

        logger.info(f"Wallet {address} renamed to {username}")
        return updated

    def get_profile(self, wallet_address: str) -> WalletProfile:
        wallet = self._store.get_wallet(wallet_address) or WalletRecord(
            address=wallet_address
        )
        return WalletProfile(
            wallet=wallet,
            username=wallet.username or default_username(wallet_address),
            history=self._store.list_finished_rooms(wallet_address, HISTORY_LIMIT),
        )


__all__ = [
    "HISTORY_LIMIT",
    "USERNAME_MAX_LENGTH",
    "WalletProfile",
    "WalletService",
    "default_username",
]
