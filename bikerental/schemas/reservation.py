# bikerental/schemas/reservation.py
"""
Reservation request, response and outcome schemas.

The outcome of ``make_reservation`` is a tagged union discriminated on
``status``: ``ReservationApproved`` carries the persisted reservation and the
applied discount, ``ReservationRejected`` carries a human-readable reason.
Infrastructure failures are raised as exceptions, never encoded here.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel, UTCDatetime
from .customer import CustomerRef


class Location(StrictModel):
    """Geolocation of the rental pickup point."""

    latitude: float = 0.0
    longitude: float = 0.0


class ReservationRequest(StrictRequestModel):
    """
    Request to reserve a bike.

    Only field types are enforced at construction time. Shape rules (empty
    bike id, missing customer, zero location, start >= end) are checked by
    ReservationService so they surface as ValidationException.
    """

    bike_id: str = ""
    customer: Optional[CustomerRef] = None
    location: Optional[Location] = None
    start_time: UTCDatetime
    end_time: UTCDatetime


class ReservationResponse(StrictModel):
    id: str
    bike_id: str
    customer_id: str
    start_time: UTCDatetime
    end_time: UTCDatetime
    status: str
    total_value: float
    applied_discount: float


class ReservationApproved(StrictModel):
    status: Literal["approved"] = "approved"
    reservation: ReservationResponse
    applied_discount: float


class ReservationRejected(StrictModel):
    status: Literal["rejected"] = "rejected"
    reason: str


ReservationOutcome = Annotated[
    Union[ReservationApproved, ReservationRejected],
    Field(discriminator="status"),
]


class AvailabilityResponse(StrictModel):
    bike_id: str
    start_time: UTCDatetime
    end_time: UTCDatetime
    available: bool
