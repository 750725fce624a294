# bikerental/models/bike.py
"""
Bike model.

Bikes are owned by the ledger and referenced by id from reservations.
Price and weight are always read from here, never taken from a request.
"""

from sqlalchemy import CheckConstraint, Column, Float, Numeric, String

from ..core.ids import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow


class Bike(Base):
    """A bike available for rent."""

    __tablename__ = "bikes"

    id = Column(String(36), primary_key=True, default=generate_ulid)
    model_name = Column(String(255), nullable=False)
    weight_kg = Column(Float, nullable=False)
    price_per_hour = Column(Numeric(12, 2, asdecimal=False), nullable=False)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("weight_kg > 0", name="ck_bikes_weight_positive"),
        CheckConstraint("price_per_hour > 0", name="ck_bikes_price_positive"),
    )

    def __repr__(self) -> str:
        return f"<Bike {self.id} {self.model_name!r}>"
