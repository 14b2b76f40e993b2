"""Game room endpoints: create, join, cancel and listing."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from riskr_backend.api.dependencies import get_settlement_engine
from riskr_backend.api.models import (
    CancelGameRequest,
    CancelGameResponse,
    CreateGameRequest,
    CreateGameResponse,
    ErrorResponse,
    JoinGameRequest,
    JoinGameResponse,
    RoomResponse,
)
from riskr_backend.settlement import SettlementEngine

router = APIRouter(tags=["games"], responses={400: {"model": ErrorResponse}})

MAX_LISTED_ROOMS = 200


@router.post("/create-game", response_model=CreateGameResponse)
def create_game(
    payload: CreateGameRequest,
    engine: SettlementEngine = Depends(get_settlement_engine),
) -> CreateGameResponse:
    """Open a room once the host's deposit transaction is verified."""

    room = engine.create_room(
        payload.host_address, payload.move, payload.amount, payload.tx_hash
    )
    return CreateGameResponse(game_id=room.id)


@router.post("/join-game", response_model=JoinGameResponse)
def join_game(
    payload: JoinGameRequest,
    engine: SettlementEngine = Depends(get_settlement_engine),
) -> JoinGameResponse:
    """Join a waiting room; the match is resolved and paid out immediately."""

    result = engine.join_room(
        payload.game_id, payload.joiner_address, payload.joiner_move, payload.tx_hash
    )
    return JoinGameResponse.from_result(result)


@router.post("/cancel-game", response_model=CancelGameResponse)
def cancel_game(
    payload: CancelGameRequest,
    engine: SettlementEngine = Depends(get_settlement_engine),
) -> CancelGameResponse:
    """Refund the host and close a waiting room."""

    result = engine.cancel_room(payload.game_id, payload.requester_address)
    return CancelGameResponse(refund_signature=result.refund.signature)


@router.get("/games", response_model=list[RoomResponse])
def list_games(
    limit: int = Query(default=50, ge=1, le=MAX_LISTED_ROOMS),
    engine: SettlementEngine = Depends(get_settlement_engine),
) -> list[RoomResponse]:
    """Return waiting rooms, newest first."""

    return [RoomResponse.from_record(room) for room in engine.list_waiting_rooms(limit)]


@router.get("/games/{game_id}", response_model=RoomResponse)
def get_game(
    game_id: str,
    engine: SettlementEngine = Depends(get_settlement_engine),
) -> RoomResponse:
    return RoomResponse.from_record(engine.get_room(game_id))
