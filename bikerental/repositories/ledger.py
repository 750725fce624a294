# bikerental/repositories/ledger.py
"""
Ledger: the transactional store behind reservations.

The ledger owns the engine and the session factories and exposes one
repository per aggregate (bikes, customers, reservations). Reservation
orchestration opens a LedgerTransaction with ``begin()`` and hands it
explicitly to every transaction-scoped repository call.

A LedgerTransaction wraps exactly one Session and owns one worker thread.
Async callers run its statements through ``run()``, so a transaction never
queues behind other transactions parked on the SQLite write lock in a shared
pool. Its operations are also serialized by a lock, so a rollback issued
while a task is being canceled waits for the statement still in flight.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
import contextvars
import functools
import logging
import threading
from typing import Any, Callable, Iterator, Optional, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.config import IsolationLevel, Settings, settings as default_settings
from ..core.exceptions import RepositoryException, ReservationConflictError
from ..database import LOCK_TIMEOUT_OPTION, READ_ONLY_OPTION, Base, create_ledger_engine
from .bike_repository import BikeRepository
from .customer_repository import CustomerRepository
from .reservation_repository import ReservationRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE codes the store uses to refuse an overlapping reservation.
EXCLUSION_VIOLATION = "23P01"
SERIALIZATION_FAILURE = "40001"
_CONFLICT_SQLSTATES = frozenset({EXCLUSION_VIOLATION, SERIALIZATION_FAILURE})


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_conflict_error(exc: SQLAlchemyError) -> bool:
    """True when the store rejected a write because of a concurrent overlap."""
    return isinstance(exc, DBAPIError) and _sqlstate(exc) in _CONFLICT_SQLSTATES


class LedgerTransaction:
    """
    One ledger transaction.

    ``rollback()`` is idempotent and a no-op after ``commit()``; it never
    raises, so it is safe to call unconditionally on every exit path.
    """

    def __init__(self, session: Session, isolation_level: Optional[str] = None):
        self._session = session
        self._lock = threading.Lock()
        self._state = "active"
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ledger-tx")
        self._executor_closed = False
        self.isolation_level = isolation_level

    @property
    def is_active(self) -> bool:
        return self._state == "active"

    @property
    def state(self) -> str:
        return self._state

    async def run(self, func: Callable[..., T], *args: Any) -> T:
        """Run blocking work for this transaction on its own worker thread."""
        if self._executor_closed:
            return await asyncio.to_thread(func, *args)
        loop = asyncio.get_running_loop()
        ctx = contextvars.copy_context()
        return await loop.run_in_executor(self._executor, functools.partial(ctx.run, func, *args))

    @contextmanager
    def exclusive(self) -> Iterator[Session]:
        """
        Yield the session for one unit of work.

        SQLAlchemy errors are translated to ReservationConflictError when the
        store reports a conflicting write, and to RepositoryException
        otherwise.
        """
        with self._lock:
            if self._state != "active":
                raise RepositoryException(f"Transaction is already {self._state}")
            try:
                yield self._session
            except SQLAlchemyError as exc:
                if is_conflict_error(exc):
                    logger.info("Store refused conflicting reservation write: %s", exc)
                    raise ReservationConflictError(str(exc)) from exc
                logger.error("Ledger transaction operation failed: %s", exc)
                raise RepositoryException(f"Ledger operation failed: {exc}") from exc

    def commit(self) -> None:
        with self._lock:
            if self._state != "active":
                raise RepositoryException(f"Cannot commit a transaction that is {self._state}")
            try:
                self._session.commit()
            except SQLAlchemyError as exc:
                self._rollback_locked()
                if is_conflict_error(exc):
                    logger.info("Commit refused by store as conflicting: %s", exc)
                    raise ReservationConflictError(str(exc)) from exc
                logger.error("Ledger commit failed: %s", exc)
                raise RepositoryException(f"Commit failed: {exc}") from exc
            self._state = "committed"
            self._session.close()

    def rollback(self) -> None:
        with self._lock:
            self._rollback_locked()
        self._executor_closed = True
        self._executor.shutdown(wait=False)

    def _rollback_locked(self) -> None:
        if self._state != "active":
            return
        self._state = "rolled_back"
        try:
            self._session.rollback()
        except SQLAlchemyError as exc:
            logger.error("Ledger rollback failed: %s", exc)
        finally:
            self._session.close()


class Ledger:
    """Transactional store abstraction over bikes, customers and reservations."""

    def __init__(self, engine: Engine, isolation_level: IsolationLevel = "REPEATABLE READ"):
        self.engine = engine
        self.isolation_level = isolation_level
        self._write_sessions: sessionmaker[Session] = sessionmaker(
            bind=engine, expire_on_commit=False, autoflush=False
        )
        self._read_sessions: sessionmaker[Session] = sessionmaker(
            bind=engine.execution_options(**{READ_ONLY_OPTION: True}),
            expire_on_commit=False,
            autoflush=False,
        )

        self.bikes = BikeRepository(self._read_sessions, self._write_sessions)
        self.customers = CustomerRepository(self._read_sessions, self._write_sessions)
        self.reservations = ReservationRepository(self._read_sessions, self._write_sessions)

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None, **engine_kwargs: Any) -> "Ledger":
        config = config or default_settings
        engine = create_ledger_engine(
            config.database_url,
            busy_timeout_seconds=config.sqlite_busy_timeout_seconds,
            **engine_kwargs,
        )
        return cls(engine, config.reservation_isolation_level)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def begin(
        self, isolation_level: Optional[str] = None, *, lock_timeout: Optional[float] = None
    ) -> LedgerTransaction:
        """
        Open a transaction.

        PostgreSQL runs it at the requested isolation level. SQLite ignores
        the level: the engine starts every write transaction with
        ``BEGIN IMMEDIATE``, which already serializes writers. ``lock_timeout``
        bounds how long that BEGIN may wait for the write lock.
        """
        level = isolation_level or self.isolation_level
        if self.dialect_name == "sqlite":
            bind = self.engine
            if lock_timeout is not None:
                bind = self.engine.execution_options(
                    **{LOCK_TIMEOUT_OPTION: max(lock_timeout, 0.0)}
                )
            return LedgerTransaction(self._write_sessions(bind=bind), isolation_level=None)

        bind = self.engine.execution_options(isolation_level=level)
        return LedgerTransaction(self._write_sessions(bind=bind), isolation_level=level)

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.error("Failed to create ledger schema: %s", exc)
            raise RepositoryException(f"Failed to create schema: {exc}") from exc
        logger.info("Ledger schema ready on %s", self.dialect_name)

    def dispose(self) -> None:
        self.engine.dispose()
