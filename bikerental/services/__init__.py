from .availability_checker import AvailabilityChecker
from .base import BaseService
from .bike_service import BikeService
from .customer_resolver import CustomerResolver
from .discount_engine import DiscountEngine, DiscountPolicy
from .reservation_service import ReservationService

__all__ = [
    "AvailabilityChecker",
    "BaseService",
    "BikeService",
    "CustomerResolver",
    "DiscountEngine",
    "DiscountPolicy",
    "ReservationService",
]
