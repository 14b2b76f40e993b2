"""Repositories translating settlement documents to database rows."""

from riskr_backend.database.repositories.room_store import SqlRoomStore, SqlRoomTransaction

__all__ = ["SqlRoomStore", "SqlRoomTransaction"]
