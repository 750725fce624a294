# bikerental/routes/v1/bikes.py
"""
Bike routes - API v1

Versioned bike endpoints under /api/v1/bikes.
All business logic delegated to BikeService.

Endpoints:
    GET /                 → List bikes
    POST /                → Add a bike
    GET /{bike_id}        → Get a bike
    PUT /{bike_id}        → Update a bike
    DELETE /{bike_id}     → Delete a bike (idempotent)
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Response, status

from ...api.dependencies import get_bike_service
from ...api.errors import handle_domain_exception
from ...core.exceptions import DomainException
from ...schemas.bike import BikeCreate, BikeResponse, BikeUpdate
from ...services.bike_service import BikeService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, added when mounting in main.py
router = APIRouter(tags=["bikes-v1"])


@router.get("", response_model=List[BikeResponse])
async def list_bikes(service: BikeService = Depends(get_bike_service)) -> List[BikeResponse]:
    try:
        return await asyncio.to_thread(service.list_bikes)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("", response_model=BikeResponse, status_code=status.HTTP_201_CREATED)
async def add_bike(
    payload: BikeCreate = Body(...),
    service: BikeService = Depends(get_bike_service),
) -> BikeResponse:
    """Add a bike. The id is assigned by the server and must not be sent."""
    try:
        return await asyncio.to_thread(service.add_bike, payload)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.get("/{bike_id}", response_model=BikeResponse)
async def get_bike(bike_id: str, service: BikeService = Depends(get_bike_service)) -> BikeResponse:
    try:
        return await asyncio.to_thread(service.get_bike, bike_id)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.put("/{bike_id}", response_model=BikeResponse)
async def update_bike(
    bike_id: str,
    payload: BikeUpdate = Body(...),
    service: BikeService = Depends(get_bike_service),
) -> BikeResponse:
    try:
        return await asyncio.to_thread(service.update_bike, bike_id, payload)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.delete("/{bike_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bike(bike_id: str, service: BikeService = Depends(get_bike_service)) -> Response:
    try:
        await asyncio.to_thread(service.delete_bike, bike_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
