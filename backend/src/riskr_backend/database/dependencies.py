"""FastAPI dependencies for database access."""

from functools import cache
from typing import Annotated

from fastapi import Depends

from riskr_backend.database.repositories import SqlRoomStore
from riskr_backend.database.service import DatabaseService
from riskr_backend.settings import BackendSettings, get_settings

SettingsDep = Annotated[BackendSettings, Depends(get_settings)]


@cache
def _build_database_service(database_url: str) -> DatabaseService:
    """Create a cached :class:`DatabaseService` for the given connection string."""
    return DatabaseService(database_url)


def get_database(settings: SettingsDep) -> DatabaseService:
    """Return the cached database service instance."""
    return _build_database_service(settings.database_url)


def get_room_store(
    db: Annotated[DatabaseService, Depends(get_database)],
) -> SqlRoomStore:
    """Return a room store bound to the shared database service."""
    return SqlRoomStore(db)
