"""SQLAlchemy schemas for persisted documents."""

from riskr_backend.database.schemas.deposit import DepositSchema
from riskr_backend.database.schemas.room import RoomSchema
from riskr_backend.database.schemas.wallet import WalletSchema

__all__ = ["DepositSchema", "RoomSchema", "WalletSchema"]
