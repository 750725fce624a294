from .bike import Bike
from .customer import Customer, CustomerType
from .reservation import Reservation, ReservationStatus

__all__ = [
    "Bike",
    "Customer",
    "CustomerType",
    "Reservation",
    "ReservationStatus",
]
