"""Engine and session scope for the relational room store."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from riskr_backend.database import schemas  # noqa: F401  registers the tables
from riskr_backend.database.base import BaseSchema
from riskr_backend.settings import BackendSettings, get_settings


class DatabaseService:
    """Owns the SQLAlchemy engine and hands out transactional sessions.

    Every :meth:`session` scope is one database transaction: it commits when
    the block exits normally and rolls back on any exception, which is what
    :class:`~riskr_backend.database.repositories.SqlRoomStore` relies on for
    its read-check-write transitions.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        settings: BackendSettings | None = None,
        **engine_options: Any,
    ) -> None:
        database_url = url or (settings or get_settings()).database_url
        if database_url.startswith("sqlite"):
            # Request handlers run in a threadpool and share connections.
            engine_options.setdefault("connect_args", {"check_same_thread": False})
        else:
            engine_options.setdefault("pool_pre_ping", True)
        self._engine = create_engine(database_url, **engine_options)
        self._sessions = sessionmaker(
            bind=self._engine, autoflush=False, expire_on_commit=False
        )

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_schema(self) -> None:
        """Create missing tables directly; production databases use alembic."""
        BaseSchema.metadata.create_all(self._engine)

    def dispose(self) -> None:
        self._engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        session = self._sessions()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
