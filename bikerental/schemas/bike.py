# bikerental/schemas/bike.py
"""
Pydantic schemas for bike management.

Field types are checked here; business validation (non-empty model name,
positive weight and price) lives in BikeService so every entry point gets the
same ValidationException.
"""

from typing import Optional

from ._strict_base import StrictModel, StrictRequestModel, UTCDatetime


class BikeData(StrictRequestModel):
    """Mutable bike attributes."""

    model_name: str = ""
    weight_kg: float = 0.0
    price_per_hour: float = 0.0


class BikeCreate(BikeData):
    """Payload for adding a bike; ``id`` must stay empty."""

    id: Optional[str] = None


class BikeUpdate(BikeData):
    """Payload for replacing a bike's attributes."""


class BikeResponse(StrictModel):
    id: str
    model_name: str
    weight_kg: float
    price_per_hour: float
    created_at: Optional[UTCDatetime] = None
    updated_at: Optional[UTCDatetime] = None
