"""Dependency providers for FastAPI routers."""

from __future__ import annotations

import logging
from datetime import timedelta
from functools import cache

from fastapi import Depends

from riskr_backend.api.services import WalletService
from riskr_backend.database import get_room_store
from riskr_backend.settings import BackendSettings, get_settings
from riskr_backend.settlement import (
    DepositPayoutGateway,
    HttpLedgerGateway,
    InMemoryGateway,
    RoomStore,
    SettlementEngine,
)

logger = logging.getLogger(__name__)


@cache
def _build_gateway(
    gateway_url: str | None,
    api_key: str | None,
    timeout: float,
    token_decimals: int,
) -> DepositPayoutGateway:
    """Create one gateway per configuration so idempotency state is shared."""
    if gateway_url is None:
        logger.warning("No gateway_url configured, using the in-memory mock gateway")
        return InMemoryGateway()
    return HttpLedgerGateway(
        gateway_url,
        api_key=api_key,
        timeout=timeout,
        token_decimals=token_decimals,
    )


def get_gateway(settings: BackendSettings = Depends(get_settings)) -> DepositPayoutGateway:
    """Return the shared deposit/payout gateway."""

    return _build_gateway(
        settings.gateway_url,
        settings.gateway_api_key,
        settings.gateway_timeout_seconds,
        settings.token_decimals,
    )


def get_settlement_engine(
    store: RoomStore = Depends(get_room_store),
    gateway: DepositPayoutGateway = Depends(get_gateway),
    settings: BackendSettings = Depends(get_settings),
) -> SettlementEngine:
    """Build a stateless engine around the request's store and gateway."""

    return SettlementEngine(
        store,
        gateway,
        fee_rate=settings.fee_rate,
        cooldown=timedelta(seconds=settings.cancel_cooldown_seconds),
        default_bet_amount=settings.default_bet_amount,
    )


def get_wallet_service(store: RoomStore = Depends(get_room_store)) -> WalletService:
    """Return a wallet service bound to the room store."""

    return WalletService(store)


__all__ = ["get_gateway", "get_settlement_engine", "get_wallet_service"]
