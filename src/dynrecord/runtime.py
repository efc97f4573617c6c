"""
dynrecord.runtime  ──  the process-wide connection manager.

Usage pattern in user code
--------------------------
    from dynrecord import Database

    Database.configure(DatabaseSettings(db_type="sqlite", db_path="app.db"))

    with Database.scope() as store:
        store.count("book")

One connection per process, kept in class attributes. There is no locking:
do not share it between threads or tasks without your own synchronisation.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import ClassVar, Iterator, Optional

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from .bootstrap import create_engine_for
from .config import DatabaseSettings, load_settings
from .errors import NotConnectedError, StorageError
from .persistence.store import BeanStore

logger = logging.getLogger(__name__)


class Database:
    """Opens / closes the single connection; settings are resolved once."""

    _settings: ClassVar[Optional[DatabaseSettings]] = None
    _engine: ClassVar[Optional[Engine]] = None
    _connection: ClassVar[Optional[Connection]] = None

    # ---------- settings ----------
    @classmethod
    def configure(cls, settings: DatabaseSettings) -> None:
        """Inject explicit settings; an open connection is closed first."""
        cls.disconnect()
        cls._settings = settings

    @classmethod
    def settings(cls) -> DatabaseSettings:
        if cls._settings is None:
            cls._settings = load_settings()
        return cls._settings

    # ---------- connection lifecycle ----------
    @classmethod
    def is_connected(cls) -> bool:
        conn = cls._connection
        return conn is not None and not conn.closed and not conn.invalidated

    @classmethod
    def connect(cls) -> Connection:
        """Idempotent: reuse a live connection, otherwise open one."""
        if cls.is_connected():
            return cls._connection  # type: ignore[return-value]

        cls.disconnect()  # drop a connection closed or invalidated behind our back
        backend = cls.settings().backend()  # ConfigurationError surfaces here
        engine = create_engine_for(backend)
        try:
            connection = engine.connect()
        except SQLAlchemyError as exc:
            engine.dispose()
            raise StorageError(f"cannot connect to {backend.kind} database: {exc}") from exc

        cls._engine, cls._connection = engine, connection
        logger.debug("connected to %s database", backend.kind)
        return connection

    @classmethod
    def disconnect(cls) -> None:
        """Close the connection and drop the engine, if any."""
        conn, engine = cls._connection, cls._engine
        cls._connection = cls._engine = None
        if conn is not None:
            conn.close()
        if engine is not None:
            engine.dispose()
            logger.debug("disconnected")

    @classmethod
    def reset(cls) -> None:
        """Disconnect and forget settings (next connect reloads them)."""
        cls.disconnect()
        cls._settings = None
        load_settings.cache_clear()

    # ---------- convenience helpers ----------
    @classmethod
    def connection(cls) -> Connection:
        if not cls.is_connected():
            raise NotConnectedError("no open database connection; call Database.connect()")
        return cls._connection  # type: ignore[return-value]

    @classmethod
    def store(cls) -> BeanStore:
        return BeanStore(cls.connection())

    @classmethod
    @contextmanager
    def scope(cls) -> Iterator[BeanStore]:
        """connect → yield a store → disconnect (also on error)."""
        cls.connect()
        try:
            yield cls.store()
        finally:
            cls.disconnect()
