"""Service layer for API-specific business logic."""

from riskr_backend.api.services.wallets import (
    HISTORY_LIMIT,
    USERNAME_MAX_LENGTH,
    WalletProfile,
    WalletService,
    default_username,
)

__all__ = [
    "HISTORY_LIMIT",
    "USERNAME_MAX_LENGTH",
    "WalletProfile",
    "WalletService",
    "default_username",
]
