"""
Service dependencies for the API routes.

Services are built once in the application lifespan and kept on
``app.state``; these providers hand them to route handlers.
"""

from fastapi import Request

from ..services.bike_service import BikeService
from ..services.reservation_service import ReservationService


def get_bike_service(request: Request) -> BikeService:
    return request.app.state.bike_service


def get_reservation_service(request: Request) -> ReservationService:
    return request.app.state.reservation_service
