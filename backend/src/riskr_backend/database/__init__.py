"""Database connectivity helpers and configuration objects."""

from riskr_backend.database.base import BaseSchema
from riskr_backend.database.dependencies import get_database, get_room_store
from riskr_backend.database.repositories import SqlRoomStore, SqlRoomTransaction
from riskr_backend.database.schemas import DepositSchema, RoomSchema, WalletSchema
from riskr_backend.database.service import DatabaseService
from riskr_backend.settings import BackendSettings, get_settings, settings

__all__ = [
    "BaseSchema",
    "BackendSettings",
    "DatabaseService",
    "DepositSchema",
    "RoomSchema",
    "SqlRoomStore",
    "SqlRoomTransaction",
    "WalletSchema",
    "get_database",
    "get_room_store",
    "get_settings",
    "settings",
]
