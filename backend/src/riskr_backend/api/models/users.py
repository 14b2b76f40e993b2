"""Pydantic models for wallet profile endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from riskr_backend.api.models.games import CamelModel, RoomResponse


class UpdateUsernameRequest(CamelModel):
    wallet_address: str = Field(min_length=1, max_length=64)
    new_username: str


class UpdateUsernameResponse(CamelModel):
    success: bool = True
    username: str


class ProfileResponse(CamelModel):
    """Wallet profile with the host's most recent finished games."""

    wallet_address: str
    username: str
    last_cancel_at: datetime | None = None
    history: list[RoomResponse]
