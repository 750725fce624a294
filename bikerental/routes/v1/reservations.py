# bikerental/routes/v1/reservations.py
"""
Reservation routes - API v1

Mounted under /api/v1. All business logic delegated to ReservationService.

Endpoints:
    POST /reservations                       → Reserve a bike (201 approved, 200 rejected)
    GET /reservations/{reservation_id}       → Get a reservation
    POST /reservations/{reservation_id}/cancel → Cancel (idempotent)
    GET /bikes/{bike_id}/reservations        → Approved reservations in a window
    GET /bikes/{bike_id}/availability        → Whether the bike is free in a window
"""

from datetime import datetime
import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Query, Response, status

from ...api.dependencies import get_reservation_service
from ...api.errors import handle_domain_exception
from ...core.exceptions import DomainException
from ...schemas.reservation import (
    AvailabilityResponse,
    ReservationApproved,
    ReservationOutcome,
    ReservationRequest,
    ReservationResponse,
)
from ...services.reservation_service import ReservationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reservations-v1"])


@router.post(
    "/reservations",
    response_model=ReservationOutcome,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"description": "Reservation rejected"},
        503: {"description": "Store or discount provider unavailable"},
    },
)
async def make_reservation(
    response: Response,
    payload: ReservationRequest = Body(...),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationOutcome:
    """
    Reserve a bike.

    A rejection (bike missing or already taken) is a normal outcome and is
    returned with 200; only an approved reservation creates a resource.
    """
    try:
        outcome = await service.make_reservation(payload)
    except DomainException as exc:
        handle_domain_exception(exc)

    if not isinstance(outcome, ReservationApproved):
        response.status_code = status.HTTP_200_OK
    return outcome


@router.get("/reservations/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: str,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        return await service.get_reservation(reservation_id)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/reservations/{reservation_id}/cancel", response_model=ReservationResponse)
async def cancel_reservation(
    reservation_id: str,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        return await service.cancel_reservation(reservation_id)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.get("/bikes/{bike_id}/reservations", response_model=List[ReservationResponse])
async def list_bike_reservations(
    bike_id: str,
    start_time: datetime = Query(...),
    end_time: datetime = Query(...),
    service: ReservationService = Depends(get_reservation_service),
) -> List[ReservationResponse]:
    try:
        return await service.list_reservations(bike_id, start_time, end_time)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.get("/bikes/{bike_id}/availability", response_model=AvailabilityResponse)
async def get_bike_availability(
    bike_id: str,
    start_time: datetime = Query(...),
    end_time: datetime = Query(...),
    service: ReservationService = Depends(get_reservation_service),
) -> AvailabilityResponse:
    try:
        available = await service.get_availability(bike_id, start_time, end_time)
    except DomainException as exc:
        handle_domain_exception(exc)
    return AvailabilityResponse(
        bike_id=bike_id, start_time=start_time, end_time=end_time, available=available
    )
