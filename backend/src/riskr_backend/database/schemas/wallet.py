"""Wallet user database schema."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from riskr_backend.database.base import BaseSchema

USERNAME_MAX_LENGTH = 12


class WalletSchema(BaseSchema):
    """SQLAlchemy model for users, keyed by wallet address."""

    __tablename__ = "users"

    address: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str | None] = mapped_column(
        String(USERNAME_MAX_LENGTH), nullable=True
    )
    last_cancel_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
