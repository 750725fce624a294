# bikerental/models/reservation.py
"""
Reservation model.

A reservation holds a bike over the half-open interval [start_time, end_time).
Only two statuses are ever persisted: ``approved`` (written by a committed
reservation transaction) and ``canceled``. A rejected request never produces
a row.

For a given bike, approved reservations must have pairwise-disjoint
intervals. On PostgreSQL this is backed by an exclusion constraint created
together with the table; on SQLite the reservation transaction holds the
database write lock from the overlap check until commit.
"""

from enum import Enum

from sqlalchemy import DDL, CheckConstraint, Column, ForeignKey, Index, Numeric, String, event

from ..core.ids import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow

NO_OVERLAP_CONSTRAINT = "reservations_no_overlap_per_bike"


class ReservationStatus(str, Enum):
    """Persisted reservation statuses."""

    APPROVED = "approved"
    CANCELED = "canceled"


class Reservation(Base):
    """Reservation of one bike by one customer."""

    __tablename__ = "reservations"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    bike_id = Column(String(36), ForeignKey("bikes.id"), nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False)

    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    status = Column(String(20), nullable=False, default=ReservationStatus.APPROVED.value)

    total_value = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    applied_discount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=utcnow)
    canceled_at = Column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_reservations_time_order"),
        CheckConstraint("status IN ('approved', 'canceled')", name="ck_reservations_status"),
        Index("ix_reservations_bike_window", "bike_id", "start_time", "end_time"),
    )

    def __repr__(self) -> str:
        return f"<Reservation {self.id} bike={self.bike_id} {self.status}>"


event.listen(
    Base.metadata,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    Reservation.__table__,
    "after_create",
    DDL(
        f"""
        ALTER TABLE reservations
          ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT}
          EXCLUDE USING gist (
            bike_id WITH =,
            tstzrange(start_time, end_time, '[)') WITH &&
          )
          WHERE (status = 'approved')
        """
    ).execute_if(dialect="postgresql"),
)
