"""Consumed deposit proofs."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from riskr_backend.database.base import BaseSchema


class DepositSchema(BaseSchema):
    """A deposit transaction hash that already backed a create or join."""

    __tablename__ = "deposits"

    proof: Mapped[str] = mapped_column(String(128), primary_key=True)
    wallet_address: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
