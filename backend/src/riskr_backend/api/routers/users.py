"""Wallet profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from riskr_backend.api.dependencies import get_wallet_service
from riskr_backend.api.models import (
    ErrorResponse,
    ProfileResponse,
    RoomResponse,
    UpdateUsernameRequest,
    UpdateUsernameResponse,
)
from riskr_backend.api.services import WalletService

router = APIRouter(tags=["users"], responses={400: {"model": ErrorResponse}})


@router.post("/update-username", response_model=UpdateUsernameResponse)
def update_username(
    payload: UpdateUsernameRequest,
    wallet_service: WalletService = Depends(get_wallet_service),
) -> UpdateUsernameResponse:
    """Change the display name of a wallet."""

    wallet = wallet_service.update_username(payload.wallet_address, payload.new_username)
    return UpdateUsernameResponse(username=wallet.username)


@router.get("/users/{wallet_address}", response_model=ProfileResponse)
def get_profile(
    wallet_address: str,
    wallet_service: WalletService = Depends(get_wallet_service),
) -> ProfileResponse:
    """Return the wallet's display name and recent finished games."""

    profile = wallet_service.get_profile(wallet_address)
    return ProfileResponse(
        wallet_address=profile.wallet.address,
        username=profile.username,
        last_cancel_at=profile.wallet.last_cancel_at,
        history=[RoomResponse.from_record(room) for room in profile.history],
    )
