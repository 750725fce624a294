# bikerental/services/bike_service.py
"""Bike management: list, get, add, update, delete."""

import logging
from typing import List

from ..core.exceptions import (
    InfrastructureException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..core.ids import generate_ulid
from ..repositories.ledger import Ledger
from ..schemas.bike import BikeCreate, BikeData, BikeResponse, BikeUpdate
from .base import BaseService

logger = logging.getLogger(__name__)


class BikeService(BaseService):
    """Synchronous bike CRUD; routes call it through a worker thread."""

    def __init__(self, ledger: Ledger):
        super().__init__(ledger)
        self.ledger: Ledger = ledger

    @BaseService.measure_operation("list_bikes")
    def list_bikes(self) -> List[BikeResponse]:
        try:
            bikes = self.ledger.bikes.list()
        except RepositoryException as exc:
            raise _store_failure("list_bikes", exc) from exc
        return [BikeResponse.model_validate(bike) for bike in bikes]

    @BaseService.measure_operation("get_bike")
    def get_bike(self, bike_id: str) -> BikeResponse:
        try:
            bike = self.ledger.bikes.get(bike_id)
        except RepositoryException as exc:
            raise _store_failure("get_bike", exc) from exc
        if bike is None:
            raise _bike_not_found(bike_id)
        return BikeResponse.model_validate(bike)

    @BaseService.measure_operation("add_bike")
    def add_bike(self, data: BikeCreate) -> BikeResponse:
        """Create a bike; the id is always assigned here, never by the caller."""
        if data.id:
            raise ValidationException("bike id must not be set on create", code="BIKE_ID_NOT_ALLOWED")
        self._validate(data)

        try:
            bike = self.ledger.bikes.create(
                id=generate_ulid(),
                model_name=data.model_name.strip(),
                weight_kg=data.weight_kg,
                price_per_hour=data.price_per_hour,
            )
        except RepositoryException as exc:
            raise _store_failure("add_bike", exc) from exc

        self.log_operation("add_bike", bike_id=bike.id)
        return BikeResponse.model_validate(bike)

    @BaseService.measure_operation("update_bike")
    def update_bike(self, bike_id: str, data: BikeUpdate) -> BikeResponse:
        self._validate(data)
        try:
            bike = self.ledger.bikes.update(
                bike_id,
                model_name=data.model_name.strip(),
                weight_kg=data.weight_kg,
                price_per_hour=data.price_per_hour,
            )
        except RepositoryException as exc:
            raise _store_failure("update_bike", exc) from exc
        if bike is None:
            raise _bike_not_found(bike_id)

        self.log_operation("update_bike", bike_id=bike_id)
        return BikeResponse.model_validate(bike)

    @BaseService.measure_operation("delete_bike")
    def delete_bike(self, bike_id: str) -> None:
        """Delete a bike. Deleting a bike that does not exist succeeds."""
        try:
            deleted = self.ledger.bikes.delete(bike_id)
        except RepositoryException as exc:
            raise _store_failure("delete_bike", exc) from exc
        if deleted:
            self.log_operation("delete_bike", bike_id=bike_id)
        else:
            logger.debug("Bike %s already absent", bike_id)

    def _validate(self, data: BikeData) -> None:
        if not data.model_name or not data.model_name.strip():
            raise ValidationException("model name is required", code="MISSING_MODEL_NAME")
        if data.weight_kg <= 0:
            raise ValidationException("weight must be positive", code="INVALID_WEIGHT")
        if data.price_per_hour <= 0:
            raise ValidationException("price per hour must be positive", code="INVALID_PRICE")


def _bike_not_found(bike_id: str) -> NotFoundException:
    return NotFoundException(
        f"bike with id '{bike_id}' does not exist",
        code="BIKE_NOT_FOUND",
        details={"bike_id": bike_id},
    )


def _store_failure(step: str, exc: RepositoryException) -> InfrastructureException:
    logger.error("Bike step %s failed: %s", step, exc)
    return InfrastructureException(f"{step} failed: {exc}", step=step)
