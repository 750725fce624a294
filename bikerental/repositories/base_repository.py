# bikerental/repositories/base_repository.py
"""
Base Repository Pattern for the bike rental ledger.

Repositories hold session factories rather than a single session:
- reads outside a reservation transaction open a short-lived read session
- standalone writes (bike CRUD, cancellation) open their own write session
  and commit it
- transaction-scoped operations receive a LedgerTransaction explicitly and
  never commit it

Every SQLAlchemyError is logged and re-raised as RepositoryException so the
service layer only has to know about one data-access failure type.
"""

from contextlib import contextmanager
import logging
from typing import Generic, Iterator, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Concrete base repository with the common read/write session handling.

    Attributes:
        model: SQLAlchemy model class
    """

    def __init__(
        self,
        read_sessions: sessionmaker[Session],
        write_sessions: sessionmaker[Session],
        model: Type[T],
    ):
        self._read_sessions = read_sessions
        self._write_sessions = write_sessions
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @contextmanager
    def _read_session(self) -> Iterator[Session]:
        """Short-lived session for plain reads; nothing is committed."""
        session = self._read_sessions()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def _write_session(self) -> Iterator[Session]:
        """Session that commits on success and rolls back on any error."""
        session = self._write_sessions()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            self.logger.error("Repository transaction failed: %s", exc)
            session.rollback()
            raise
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key, or None."""
        try:
            with self._read_session() as session:
                return session.get(self.model, id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self.model.__name__} by id {id}: {str(e)}")
            raise RepositoryException(
                f"Failed to retrieve {self.model.__name__}: {str(e)}"
            ) from e

    def get_all(self, skip: int = 0, limit: int = 100) -> List[T]:
        """
        Retrieve entities with pagination.

        Default limit of 100 to keep result sets bounded.
        """
        try:
            with self._read_session() as session:
                stmt = select(self.model).offset(skip).limit(limit)
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting all {self.model.__name__}: {str(e)}")
            raise RepositoryException(
                f"Failed to retrieve {self.model.__name__} list: {str(e)}"
            ) from e
