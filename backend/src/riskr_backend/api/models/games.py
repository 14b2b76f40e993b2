"""Pydantic models for the game endpoints.

Field names follow the mobile client's camelCase JSON.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from riskr_backend.settlement import JoinResult, RoomRecord
from riskr_backend.shared import Move, RoomStatus


class CamelModel(BaseModel):
    """Base model accepting and emitting camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateGameRequest(CamelModel):
    """Payload opening a room backed by the host's deposit."""

    host_address: str = Field(min_length=1, max_length=64)
    move: str
    amount: int | None = None
    tx_hash: str = Field(min_length=1, max_length=128)


class CreateGameResponse(CamelModel):
    success: bool = True
    game_id: str


class JoinGameRequest(CamelModel):
    """Payload joining and immediately settling a room."""

    game_id: str = Field(min_length=1)
    joiner_address: str = Field(min_length=1, max_length=64)
    joiner_move: str
    tx_hash: str = Field(min_length=1, max_length=128)


class PayoutResponse(CamelModel):
    recipient: str
    amount: int
    signature: str


class JoinGameResponse(CamelModel):
    """Settlement outcome returned to the joiner."""

    success: bool = True
    winner: str
    host_move: Move
    my_move: Move
    fee: int
    payouts: list[PayoutResponse]

    @classmethod
    def from_result(cls, result: JoinResult) -> JoinGameResponse:
        return cls(
            winner=result.winner,
            host_move=result.host_move,
            my_move=result.joiner_move,
            fee=result.fee,
            payouts=[
                PayoutResponse(
                    recipient=receipt.recipient,
                    amount=receipt.amount,
                    signature=receipt.signature,
                )
                for receipt in result.receipts
            ],
        )


class CancelGameRequest(CamelModel):
    game_id: str = Field(min_length=1)
    requester_address: str = Field(min_length=1, max_length=64)


class CancelGameResponse(CamelModel):
    success: bool = True
    refund_signature: str


class RoomResponse(CamelModel):
    """Public view of a room; the host move stays hidden while WAITING."""

    id: str
    host_address: str
    bet_amount: int
    status: RoomStatus
    created_at: datetime
    host_move: Move | None = None
    joiner_address: str | None = None
    joiner_move: Move | None = None
    winner: str | None = None
    settled_at: datetime | None = None

    @classmethod
    def from_record(cls, room: RoomRecord) -> RoomResponse:
        return cls(
            id=room.id,
            host_address=room.host_address,
            bet_amount=room.bet_amount,
            status=room.status,
            created_at=room.created_at,
            host_move=None if room.is_waiting else room.host_move,
            joiner_address=room.joiner_address,
            joiner_move=room.joiner_move,
            winner=room.winner,
            settled_at=room.settled_at,
        )


class ErrorResponse(CamelModel):
    """Failure envelope shared by every endpoint."""

    success: bool = False
    error: str
    kind: str
    retry_after: int | None = None
