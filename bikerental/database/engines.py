"""Engine construction for the reservation ledger."""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from bikerental.core.config import settings

logger = logging.getLogger(__name__)

# Execution option marking connections that never write; SQLite starts them
# with a deferred BEGIN so they do not queue behind the write lock.
READ_ONLY_OPTION = "ledger_read_only"

# Execution option carrying how long, in seconds, a SQLite transaction may wait
# for the write lock. Unset means the engine busy timeout.
LOCK_TIMEOUT_OPTION = "ledger_lock_timeout"

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 5,
    "pool_recycle": 300,
    "pool_pre_ping": True,
}


def create_ledger_engine(
    database_url: Optional[str] = None,
    *,
    busy_timeout_seconds: Optional[float] = None,
    echo: bool = False,
) -> Engine:
    """
    Create the SQLAlchemy engine backing the ledger.

    SQLite engines get transaction hooks so every transaction starts with
    ``BEGIN IMMEDIATE``: the write lock is taken before the overlap check,
    which serializes reservation transactions on the database file.
    """
    url = database_url or settings.database_url

    if url.startswith("sqlite"):
        timeout = busy_timeout_seconds or settings.sqlite_busy_timeout_seconds
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )
        _install_sqlite_transaction_hooks(engine, timeout)
        logger.info("Ledger engine created for SQLite (busy timeout %.1fs)", timeout)
        return engine

    engine = create_engine(url, echo=echo, **_DEFAULT_POOL_KWARGS)
    logger.info("Ledger engine created for dialect %s", engine.dialect.name)
    return engine


def _install_sqlite_transaction_hooks(engine: Engine, busy_timeout_seconds: float) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        # Hand BEGIN over to SQLAlchemy instead of the pysqlite driver.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        options = conn.get_execution_options()
        # Pooled connections keep the last value, so it is set on every BEGIN.
        lock_timeout = options.get(LOCK_TIMEOUT_OPTION)
        if lock_timeout is None:
            lock_timeout = busy_timeout_seconds
        conn.exec_driver_sql(f"PRAGMA busy_timeout = {max(int(lock_timeout * 1000), 0)}")
        if options.get(READ_ONLY_OPTION):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")
