# bikerental/repositories/bike_repository.py
"""
Bike Repository.

Bikes are read outside reservation transactions (the reservation flow uses a
plain, non-locking read for price and weight) and written only through the
bike management service.
"""

import logging
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..core.exceptions import RepositoryException
from ..models.bike import Bike
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BikeRepository(BaseRepository[Bike]):
    """Data access for bikes."""

    def __init__(self, read_sessions, write_sessions):
        super().__init__(read_sessions, write_sessions, Bike)

    def get(self, bike_id: str) -> Optional[Bike]:
        return self.get_by_id(bike_id)

    def list(self) -> List[Bike]:
        """All bikes, oldest first."""
        try:
            with self._read_session() as session:
                stmt = select(Bike).order_by(Bike.created_at, Bike.id)
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bikes: {str(e)}")
            raise RepositoryException(f"Failed to list bikes: {str(e)}") from e

    def create(self, **fields: Any) -> Bike:
        try:
            with self._write_session() as session:
                bike = Bike(**fields)
                session.add(bike)
                session.flush()
                return bike
        except IntegrityError as exc:
            self.logger.error("Integrity error creating bike: %s", exc, exc_info=True)
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to create bike: {str(e)}") from e

    def update(self, bike_id: str, **fields: Any) -> Optional[Bike]:
        """Update the given fields; None when the bike does not exist."""
        try:
            with self._write_session() as session:
                bike = session.get(Bike, bike_id)
                if bike is None:
                    return None
                for key, value in fields.items():
                    if hasattr(bike, key):
                        setattr(bike, key, value)
                session.flush()
                return bike
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to update bike {bike_id}: {str(e)}") from e

    def delete(self, bike_id: str) -> bool:
        """
        Delete a bike.

        Returns False if the bike was not found; raises for constraint
        violations such as existing reservations.
        """
        try:
            with self._write_session() as session:
                bike = session.get(Bike, bike_id)
                if bike is None:
                    return False
                session.delete(bike)
                session.flush()
                return True
        except IntegrityError as e:
            self.logger.error(f"Cannot delete bike {bike_id} due to constraints: {str(e)}")
            raise RepositoryException(
                f"Cannot delete due to existing references: {str(e)}"
            ) from e
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to delete bike {bike_id}: {str(e)}") from e
