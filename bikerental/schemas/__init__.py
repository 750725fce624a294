from .bike import BikeCreate, BikeResponse, BikeUpdate
from .customer import CustomerProfile, CustomerRef, CustomerResponse
from .discount import DiscountRequest, DiscountResponse
from .reservation import (
    AvailabilityResponse,
    Location,
    ReservationApproved,
    ReservationOutcome,
    ReservationRejected,
    ReservationRequest,
    ReservationResponse,
)

__all__ = [
    "AvailabilityResponse",
    "BikeCreate",
    "BikeResponse",
    "BikeUpdate",
    "CustomerProfile",
    "CustomerRef",
    "CustomerResponse",
    "DiscountRequest",
    "DiscountResponse",
    "Location",
    "ReservationApproved",
    "ReservationOutcome",
    "ReservationRejected",
    "ReservationRequest",
    "ReservationResponse",
]
