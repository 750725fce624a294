"""Transient discount value objects; never persisted."""

from typing import List

from pydantic import ConfigDict

from ._strict_base import StrictModel
from .reservation import Location


class DiscountRequest(StrictModel):
    """Everything the discount rules may look at for one reservation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    customer_id: str
    customer_type: str
    bike_id: str
    bike_weight_kg: float
    location: Location
    reservation_value: float


class DiscountResponse(StrictModel):
    """Capped discount amount plus the names of the rules that fired."""

    amount: float
    applied_rules: List[str] = []
    capped: bool = False
