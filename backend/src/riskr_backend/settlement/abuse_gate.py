"""Per-wallet cooldown between cancellations."""

from __future__ import annotations

from datetime import datetime, timedelta
from math import ceil

from riskr_backend.settlement.errors import CooldownActiveError
from riskr_backend.settlement.persistence import WalletRecord

DEFAULT_CANCEL_COOLDOWN = timedelta(seconds=300)


class AbuseGate:
    """Decide whether a wallet may cancel based on its last cancellation."""

    def __init__(self, cooldown: timedelta = DEFAULT_CANCEL_COOLDOWN) -> None:
        self._cooldown = cooldown

    @property
    def cooldown(self) -> timedelta:
        return self._cooldown

    def remaining(self, wallet: WalletRecord | None, now: datetime) -> timedelta:
        """Return how long *wallet* still has to wait, zero when allowed."""
        if wallet is None or wallet.last_cancel_at is None:
            return timedelta(0)
        left = self._cooldown - (now - wallet.last_cancel_at)
        return max(left, timedelta(0))

    def allow_cancel(self, wallet: WalletRecord | None, now: datetime) -> bool:
        return self.remaining(wallet, now) <= timedelta(0)

    def ensure_allowed(self, wallet_address: str, wallet: WalletRecord | None, now: datetime) -> None:
        """Raise :class:`CooldownActiveError` if the wallet is still cooling down."""
        left = self.remaining(wallet, now)
        if left > timedelta(0):
            raise CooldownActiveError(wallet_address, retry_after=ceil(left.total_seconds()))


__all__ = ["DEFAULT_CANCEL_COOLDOWN", "AbuseGate"]
