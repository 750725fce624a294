# bikerental/repositories/reservation_repository.py
"""
Reservation Repository.

Overlap semantics are shared by every query here: intervals are half-open,
so an existing reservation [s, e) overlaps a requested [start, end) iff
``s < end AND start < e``. Touching intervals do not overlap, and only
``approved`` reservations take part.
"""

from datetime import datetime
import logging
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement

from ..core.exceptions import RepositoryException
from ..models.reservation import Reservation, ReservationStatus
from ..models.types import utcnow
from .base_repository import BaseRepository

if TYPE_CHECKING:
    from .ledger import LedgerTransaction

logger = logging.getLogger(__name__)


def _overlaps(bike_id: str, start: datetime, end: datetime) -> List[ColumnElement[bool]]:
    return [
        Reservation.bike_id == bike_id,
        Reservation.status == ReservationStatus.APPROVED.value,
        Reservation.start_time < end,
        Reservation.end_time > start,
    ]


class ReservationRepository(BaseRepository[Reservation]):
    """Data access for reservations."""

    def __init__(self, read_sessions, write_sessions):
        super().__init__(read_sessions, write_sessions, Reservation)

    # Transaction-scoped operations

    def check_overlap(
        self, tx: "LedgerTransaction", bike_id: str, start: datetime, end: datetime
    ) -> bool:
        """True when an approved reservation for the bike overlaps [start, end)."""
        with tx.exclusive() as session:
            stmt = select(Reservation.id).where(*_overlaps(bike_id, start, end)).limit(1)
            return session.execute(stmt).first() is not None

    def insert(self, tx: "LedgerTransaction", reservation: Reservation) -> Reservation:
        with tx.exclusive() as session:
            session.add(reservation)
            session.flush()
            return reservation

    # Standalone operations

    def get(self, reservation_id: str) -> Optional[Reservation]:
        return self.get_by_id(reservation_id)

    def list(self, bike_id: str, start: datetime, end: datetime) -> List[Reservation]:
        """Approved reservations for a bike overlapping [start, end), by start time."""
        try:
            with self._read_session() as session:
                stmt = (
                    select(Reservation)
                    .where(*_overlaps(bike_id, start, end))
                    .order_by(Reservation.start_time)
                )
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing reservations for bike {bike_id}: {str(e)}")
            raise RepositoryException(f"Failed to list reservations: {str(e)}") from e

    def update_status(self, reservation_id: str, status: ReservationStatus) -> Optional[Reservation]:
        """
        Set a reservation's status under a row lock.

        Returns the reservation, or None when it does not exist. Setting the
        status it already has changes nothing.
        """
        try:
            with self._write_session() as session:
                stmt = select(Reservation).where(Reservation.id == reservation_id).with_for_update()
                reservation = session.scalars(stmt).first()
                if reservation is None:
                    return None
                if reservation.status != status.value:
                    reservation.status = status.value
                    if status is ReservationStatus.CANCELED:
                        reservation.canceled_at = utcnow()
                    session.flush()
                return reservation
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating reservation {reservation_id}: {str(e)}")
            raise RepositoryException(f"Failed to update reservation: {str(e)}") from e
