"""Immutable value objects shared across the settlement layer."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

DRAW = "DRAW"


class Payout(BaseModel):
    """A single disbursement of stake units to a wallet."""

    model_config = ConfigDict(frozen=True)

    recipient: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0)


class PayoutReceipt(BaseModel):
    """Confirmation returned by the gateway once a payout was issued."""

    model_config = ConfigDict(frozen=True)

    recipient: str
    amount: int = Field(..., ge=0)
    signature: str = Field(..., min_length=1)
    idempotency_key: str
    issued_at: datetime


__all__ = ["DRAW", "Payout", "PayoutReceipt"]
