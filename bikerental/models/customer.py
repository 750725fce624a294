# bikerental/models/customer.py
from enum import Enum

from sqlalchemy import CheckConstraint, Column, Index, String

from ..core.ids import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow


class CustomerType(str, Enum):
    """Customer kinds; discount rules key off this."""

    INDIVIDUAL = "individual"
    BUSINESS = "business"


class Customer(Base):
    """
    A renting customer.

    Customers are created inline during reservation creation when the request
    carries a profile instead of an id. Emails are not unique: no merging or
    deduplication happens here.
    """

    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=generate_ulid)
    type = Column(String(20), nullable=False)
    first_name = Column(String(255), nullable=False)
    surname = Column(String(255), nullable=True)
    email = Column(String(320), nullable=False)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("type IN ('individual', 'business')", name="ck_customers_type"),
        Index("ix_customers_email", "email"),
    )

    def __repr__(self) -> str:
        return f"<Customer {self.id} {self.type}>"
