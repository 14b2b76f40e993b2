"""Payout arithmetic for a settled room.

All amounts are integers in stake units. The platform fee is floored so the
disbursed total never exceeds the pot; the fee itself stays with the treasury
and is not paid out here.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal

from riskr_backend.settlement.errors import InvalidAmountError
from riskr_backend.shared import DRAW, Payout


def _validate(bet_amount: int, fee_rate: float | Decimal) -> Decimal:
    if isinstance(bet_amount, bool) or not isinstance(bet_amount, int):
        msg = f"Bet amount must be an integer, got {bet_amount!r}."
        raise InvalidAmountError(msg)
    if bet_amount <= 0:
        msg = f"Bet amount must be positive, got {bet_amount}."
        raise InvalidAmountError(msg)
    rate = Decimal(str(fee_rate))
    if not Decimal(0) <= rate < Decimal(1):
        msg = f"Fee rate must be in [0, 1), got {fee_rate}."
        raise InvalidAmountError(msg)
    return rate


def platform_fee(bet_amount: int, fee_rate: float | Decimal) -> int:
    """Return the fee retained from a decided pot of ``2 * bet_amount``."""
    rate = _validate(bet_amount, fee_rate)
    pot = Decimal(2 * bet_amount)
    return int((pot * rate).to_integral_value(rounding=ROUND_FLOOR))


def compute_payouts(
    bet_amount: int,
    outcome: str,
    fee_rate: float | Decimal,
    *,
    host_address: str,
    joiner_address: str,
) -> tuple[Payout, ...]:
    """Return the disbursements for *outcome* (a winner address or ``DRAW``)."""
    _validate(bet_amount, fee_rate)
    if outcome == DRAW:
        return (
            Payout(recipient=host_address, amount=bet_amount),
            Payout(recipient=joiner_address, amount=bet_amount),
        )
    if outcome not in (host_address, joiner_address):
        msg = f"Winner {outcome!r} is not a participant."
        raise ValueError(msg)
    prize = 2 * bet_amount - platform_fee(bet_amount, fee_rate)
    return (Payout(recipient=outcome, amount=prize),)


__all__ = ["compute_payouts", "platform_fee"]
