"""Game room database schema."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Enum, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from riskr_backend.database.base import BaseSchema
from riskr_backend.shared import Move, RoomStatus

MOVE_ENUM = Enum(Move, name="move")
ROOM_STATUS_ENUM = Enum(RoomStatus, name="room_status")


class RoomSchema(BaseSchema):
    """SQLAlchemy model for wager rooms."""

    __tablename__ = "games"
    __table_args__ = (Index("ix_games_status_created_at", "status", "created_at"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    host_address: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    host_move: Mapped[Move] = mapped_column(MOVE_ENUM, nullable=False)
    bet_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[RoomStatus] = mapped_column(ROOM_STATUS_ENUM, nullable=False)
    joiner_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    joiner_move: Mapped[Move | None] = mapped_column(MOVE_ENUM, nullable=True)
    winner: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    settled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
